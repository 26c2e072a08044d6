import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def env_bool(name, default=False):
    return os.getenv(name, str(default)).lower() in ('true', '1', 't', 'yes')


SECRET_KEY = os.getenv('SECRET_KEY')
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = 'insecure-dev-key-change-in-production'

DEBUG = env_bool('DEBUG', True)

ALLOWED_HOSTS = [h.strip() for h in os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework.authtoken',
    'booking',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'salon_booking.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'salon_booking.wsgi.application'

# sqlite for local work; set DB_ENGINE=postgresql in production so the
# overlap exclusion constraint is installed.
DB_ENGINE = os.getenv('DB_ENGINE', 'sqlite3')
if DB_ENGINE == 'postgresql':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('DB_NAME', 'salon'),
            'USER': os.getenv('DB_USER', 'postgres'),
            'PASSWORD': os.getenv('DB_PASSWORD', ''),
            'HOST': os.getenv('DB_HOST', 'localhost'),
            'PORT': os.getenv('DB_PORT', '5432'),
            'ATOMIC_REQUESTS': False,
            'OPTIONS': {
                'options': '-c statement_timeout=%s' % os.getenv('DB_STATEMENT_TIMEOUT_MS', '5000'),
            },
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.getenv('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
            # BEGIN IMMEDIATE: booking and billing transactions take the write
            # lock before reading, since sqlite ignores SELECT ... FOR UPDATE.
            'OPTIONS': {'timeout': 20, 'transaction_mode': 'IMMEDIATE'},
            # file-backed so threaded tests share one test database
            'TEST': {'NAME': os.getenv('DB_TEST_NAME', str(BASE_DIR / 'test_db.sqlite3'))},
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIME_ZONE', 'Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.TokenAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAdminUser',
    ],
    # Form-submission throttling only; double-booking protection lives in
    # the booking transaction.
    'DEFAULT_THROTTLE_RATES': {
        'bookings': os.getenv('BOOKING_THROTTLE_RATE', '60/minute'),
    },
}

SALON_BOOKING = {
    'SALON_NAME': os.getenv('SALON_NAME', 'Velvet Family Salon'),
    'OPENING_TIME': os.getenv('SALON_OPENING_TIME', '09:00'),
    'CLOSING_TIME': os.getenv('SALON_CLOSING_TIME', '21:00'),
    'SLOT_INTERVAL_MINUTES': int(os.getenv('SALON_SLOT_INTERVAL_MINUTES', '30')),
    'BILL_NUMBER_PREFIX': os.getenv('BILL_NUMBER_PREFIX', 'VFS'),
    'ALLOW_PAST_BOOKINGS': env_bool('ALLOW_PAST_BOOKINGS', False),
    'DEFAULT_COUNTRY_CODE': os.getenv('DEFAULT_COUNTRY_CODE', '91'),
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'booking': {
            'handlers': ['console'],
            'level': os.getenv('BOOKING_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
