#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify MongoDB is reachable and see which delivery
providers are configured.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from jobportal.core.config import get_settings
from jobportal.db.mongodb import init_mongo_indexes, test_mongo_connection


def main():
    settings = get_settings()
    print("=" * 50)
    print("JOB PORTAL - CONNECTION CHECK")
    print("=" * 50)

    # MongoDB
    print("\n[1] Testing MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    mongo_ok = test_mongo_connection()
    if mongo_ok:
        print("    ✅ MongoDB: CONNECTED")
        init_mongo_indexes()
        print("    ✅ Indexes: CREATED")
    else:
        print("    ❌ MongoDB: FAILED")

    # SMTP
    print("\n[2] Email delivery...")
    if settings.email_enabled:
        print(f"    SMTP: {settings.smtp_host}:{settings.smtp_port} as {settings.smtp_user}")
    else:
        print("    ⚠️  SMTP not configured: emails are logged instead of sent")

    # Twilio
    print("\n[3] SMS delivery...")
    if settings.sms_enabled:
        print(f"    Twilio account: {settings.twilio_account_sid[:6]}****, from {settings.twilio_from_number}")
    else:
        print("    ⚠️  Twilio not configured: SMS are logged instead of sent")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)
    return 0 if mongo_ok else 1


if __name__ == "__main__":
    sys.exit(main())
