"""Root conftest: environment for tests, set before any app import."""

import os

# keep tests away from real services
os.environ.setdefault("SUPABASE_URL", "")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")
os.environ.setdefault("GOOGLE_ACCESS_TOKEN", "")
os.environ.setdefault("FEATURE_SHEETS_SYNC", "false")
os.environ.setdefault("FEATURE_SUBSCRIPTION_SCHEDULER", "false")
os.environ.setdefault("FEATURE_REQUEST_LOGGING", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
