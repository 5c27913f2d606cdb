import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")

# Environment
APP_ENV = os.getenv("APP_ENV", "development").strip().lower()
IS_PRODUCTION = APP_ENV == "production"

# Stripe
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
STRIPE_API_VERSION = os.getenv("STRIPE_API_VERSION", "2024-06-20")

# Supabase (checked when the client is first built)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

# Customer-facing links (ticket QR codes, order pages)
APP_BASE_URL = os.getenv("APP_BASE_URL", "https://www.stagepasspro.com").rstrip("/")

# SendGrid
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY", "")
SENDGRID_FROM_EMAIL = os.getenv("SENDGRID_FROM_EMAIL") or os.getenv("FROM_EMAIL", "")
SENDGRID_TEMPLATE_ID = os.getenv("SENDGRID_TEMPLATE_ID", "")
SENDGRID_API_URL = os.getenv("SENDGRID_API_URL", "https://api.sendgrid.com/v3/mail/send")

# Deferred webhook processing
WEBHOOK_MAX_CONCURRENCY = int(os.getenv("WEBHOOK_MAX_CONCURRENCY", "10"))
WEBHOOK_SHUTDOWN_TIMEOUT = float(os.getenv("WEBHOOK_SHUTDOWN_TIMEOUT", "25"))
