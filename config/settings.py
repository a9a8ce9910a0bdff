import os
from pathlib import Path
from dotenv import load_dotenv
from corsheaders.defaults import default_headers

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

# ---- Core ----
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-invoice-engine-dev-key")
DEBUG = os.getenv("DJANGO_DEBUG", "1").strip().lower() in ("1", "true", "yes")

ALLOWED_HOSTS = [
    "localhost",
    "127.0.0.1",
    "testserver",
] + [h.strip() for h in os.getenv("ALLOWED_HOSTS", "").split(",") if h.strip()]

# --- behind proxy / https ---
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
USE_X_FORWARDED_HOST = True

# ---- Apps ----
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "rest_framework",
    "corsheaders",
    "invoicing",
]

# ---- Middleware (CORS first) ----
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

# ---- DB (contrib apps only; bookings live upstream) ----
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# ---- I18N/Timezone ----
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "Asia/Kathmandu")
USE_I18N = True
USE_TZ = True

# ---- Static ----
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STATICFILES_DIRS = [p for p in [BASE_DIR / "static"] if p.exists()]

# ---- CORS ----
CORS_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
] + [o.strip() for o in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",") if o.strip()]
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_METHODS = ["GET", "POST", "PATCH", "OPTIONS"]
CORS_ALLOW_HEADERS = list(default_headers) + [
    "Authorization",
]

# ---- DRF (auth is handled by the host application) ----
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
}

# ---- Upstream booking API (env-driven) ----
BOOKING_API = {
    "BASE_URL": os.getenv("BOOKING_API_BASE_URL", "http://localhost:8000/api/v1"),
    "TOKEN": os.getenv("BOOKING_API_TOKEN"),
    "TIMEOUT": float(os.getenv("BOOKING_API_TIMEOUT", "15")),
}

# Reply composer lives in the dashboard; {booking_id} and {status} are filled in.
REPLY_COMPOSER_URL = os.getenv(
    "REPLY_COMPOSER_URL",
    "/dashboard/bookings/reply/{booking_id}?status={status}",
)

# ---- Invoice documents ----
INVOICE = {
    "ISSUER_NAME": os.getenv("INVOICE_ISSUER_NAME", "Real Himalaya Pvt. Ltd"),
    "ISSUER_ADDRESS": os.getenv("INVOICE_ISSUER_ADDRESS", "Pulchowk, Lalitpur, Nepal"),
    "ISSUER_EMAIL": os.getenv("INVOICE_ISSUER_EMAIL", "info@realhimalaya.com"),
    "LOGO_URL": os.getenv("INVOICE_LOGO_URL", ""),
    "TAGLINE": os.getenv("INVOICE_TAGLINE", "Your Gateway to Extraordinary Adventures"),
    "FILE_PREFIX": os.getenv("INVOICE_FILE_PREFIX", "Real-Himalaya_Invoice"),
    "CURRENCY_SYMBOLS": {"USD": "$", "EUR": "€", "GBP": "£"},
    "DEFAULT_CURRENCY": "USD",
    "LOGO_TIMEOUT": float(os.getenv("INVOICE_LOGO_TIMEOUT", "5")),
    "PDF_COMPRESS": True,
}

# ---- Logging ----
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"console": {"class": "logging.StreamHandler"}},
    "loggers": {
        "invoicing": {"handlers": ["console"], "level": "DEBUG"},
        "invoicing.client": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "django.request": {"handlers": ["console"], "level": "WARNING"},
    },
}
