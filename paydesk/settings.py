from pathlib import Path
import os

from decouple import config as _decouple_config
from dotenv import load_dotenv

# ───────────── BASE / ENV ─────────────
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


# ───────────── env helpers ─────────────
def _to_bool(v, default=False):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    return s in ("1", "true", "t", "yes", "y", "on")


def env_str(key, default=""):
    return _decouple_config(key, default=default)


def env_bool(key, default=False):
    return _to_bool(env_str(key, None), default)


def env_int(key, default=0):
    v = env_str(key, None)
    try:
        return int(v) if v is not None else default
    except (TypeError, ValueError):
        return default


# ───────────── Base Config ─────────────
SECRET_KEY = env_str("SECRET_KEY", "change-me")
DEBUG = env_bool("DEBUG", False)

ALLOWED_HOSTS = [h.strip() for h in env_str("ALLOWED_HOSTS", "127.0.0.1,localhost,testserver").split(",") if h.strip()]

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ───────────── Installed Apps ─────────────
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "payments",
]

# ───────────── Middleware ─────────────
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# ───────────── Templates ─────────────
ROOT_URLCONF = "paydesk.urls"
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]
WSGI_APPLICATION = "paydesk.wsgi.application"

# ───────────── Database ─────────────
DATABASES = {
    "default": {
        "ENGINE": env_str("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": env_str("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": env_str("DB_USER", ""),
        "PASSWORD": env_str("DB_PASSWORD", ""),
        "HOST": env_str("DB_HOST", ""),
        "PORT": env_str("DB_PORT", ""),
    }
}

# ───────────── REST framework ─────────────
# احراز هویت خارج از این سرویس است
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.AllowAny",),
    "UNAUTHENTICATED_USER": None,
}

# ───────────── i18n / TZ ─────────────
LANGUAGE_CODE = "fa"
TIME_ZONE = "Asia/Tehran"
USE_I18N = True
USE_TZ = True

# ───────────── Static ─────────────
STATIC_URL = "/static/"
STATIC_ROOT = os.path.join(BASE_DIR, "staticfiles")

# ───────────── Security / Cookies ─────────────
SECURE_REFERRER_POLICY = "strict-origin-when-cross-origin"
USE_X_FORWARDED_HOST = True
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

if not DEBUG:
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True

# ───────────── Payments (Paystar) ─────────────
FRONTEND_URL = env_str("FRONTEND_URL", "http://localhost:3000").rstrip("/")

PAYSTAR_MERCHANT_ID = env_str("PAYSTAR_MERCHANT_ID", "")

PAY_RETURN_URL = env_str(
    "PAY_RETURN_URL", f"{FRONTEND_URL}/payment/result"
).rstrip("/")

PAY_CALLBACK_URL = env_str(
    "PAY_CALLBACK_URL",
    "http://localhost:8000/api/payments/callback/paystar/",
).rstrip("/") + "/"

PAYMENTS = {
    "DEFAULT_GATEWAY": env_str("PAYMENTS_DEFAULT_GATEWAY", "paystar"),
    "RETURN_URL": PAY_RETURN_URL,
    "CALLBACK_URL": PAY_CALLBACK_URL,
    "HTTP_TIMEOUT": env_int("PAYMENTS_HTTP_TIMEOUT", 25),
    "ALLOWED_GATEWAYS": ["paystar", "fake"] if DEBUG else ["paystar"],
    "ALLOWED_CALLBACK_HOSTS": [
        h.strip()
        for h in env_str("PAYMENTS_ALLOWED_CALLBACK_HOSTS", "localhost,127.0.0.1").split(",")
        if h.strip()
    ],
    "GATEWAYS": {
        "paystar": {
            "MERCHANT_ID": PAYSTAR_MERCHANT_ID,
            "CALLBACK_URL": PAY_CALLBACK_URL,
            "API_PURCHASE_URL": env_str("PAYSTAR_API_PURCHASE_URL", "https://paystar.ir/api/create/"),
            "API_PAYMENT_URL": env_str("PAYSTAR_API_PAYMENT_URL", "https://paystar.ir/paying/"),
            "API_VERIFICATION_URL": env_str("PAYSTAR_API_VERIFICATION_URL", "https://paystar.ir/api/verify/"),
            "DESCRIPTION": env_str("PAYSTAR_DESCRIPTION", "payment using paystar"),
        },
        "fake": {
            "CALLBACK_URL": env_str(
                "FAKE_CALLBACK_URL", "http://localhost:8000/api/payments/callback/fake/"
            ),
        },
    },
}

# ───────────── Logging ─────────────
LOG_DIR = BASE_DIR / "logs"
os.makedirs(LOG_DIR, exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "[{levelname}] {asctime} {name} :: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "verbose"},
        "file": {
            "class": "logging.FileHandler",
            "filename": str(LOG_DIR / "app.log"),
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {"handlers": ["console", "file"], "level": "INFO"},
        "payments": {"handlers": ["console", "file"], "level": env_str("PAYMENTS_LOG_LEVEL", "DEBUG"), "propagate": False},
    },
    "root": {"handlers": ["console", "file"], "level": "INFO"},
}
