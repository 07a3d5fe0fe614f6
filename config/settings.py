from pathlib import Path

from decouple import Csv, config

# -------------------------------
# Diretórios base
# -------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# -------------------------------
# Segurança e debug
# -------------------------------
SECRET_KEY = config('SECRET_KEY', default='clinic-billing-dev-secret')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1', cast=Csv())

# -------------------------------
# Logging
# -------------------------------
LOG_LEVEL = config('LOG_LEVEL', default='INFO')
JSON_LOGS = config('JSON_LOGS', default=False, cast=bool)
LOGGING_CONFIG = None  # structlog é configurado em config/structlog_config.py

# -------------------------------
# Política de faturamento
# -------------------------------
BILLING_LATE_FEE_RATE          = config('BILLING_LATE_FEE_RATE', default='0.02')
BILLING_DAILY_INTEREST_RATE    = config('BILLING_DAILY_INTEREST_RATE', default='0.00033')
BILLING_DEFAULT_VALIDITY_DAYS  = config('BILLING_DEFAULT_VALIDITY_DAYS', default=30, cast=int)
BILLING_DEFAULT_DUE_IN_DAYS    = config('BILLING_DEFAULT_DUE_IN_DAYS', default=30, cast=int)
BILLING_PIX_EXPIRATION_MINUTES = config('BILLING_PIX_EXPIRATION_MINUTES', default=30, cast=int)
BILLING_BOLETO_DAYS_TO_EXPIRE  = config('BILLING_BOLETO_DAYS_TO_EXPIRE', default=3, cast=int)
BILLING_PROJECTION_DAYS        = config('BILLING_PROJECTION_DAYS', default=30, cast=int)
BILLING_PIX_QR_BASE_URL        = config('BILLING_PIX_QR_BASE_URL', default='https://api.qrserver.com/v1/create-qr-code/?data=')
BILLING_BOLETO_BASE_URL        = config('BILLING_BOLETO_BASE_URL', default='https://boleto.example.com')

# -------------------------------
# Apps
# -------------------------------
INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'plugins.django_interface.apps.DjangoInterfaceConfig',
    'clinic_billing_api.apps.ClinicBillingApiConfig',
]

MIDDLEWARE = [
    'django.middleware.common.CommonMiddleware',
]

# -------------------------------
# Banco de Dados
# -------------------------------
DATABASES = {
    'default': {
        'ENGINE':   config('DB_ENGINE', default='django.db.backends.sqlite3'),
        'NAME':     config('DB_NAME', default=str(BASE_DIR / 'clinic_billing.sqlite3')),
        'USER':     config('DB_USER', default=''),
        'PASSWORD': config('DB_PASS', default=''),
        'HOST':     config('DB_HOST', default=''),
        'PORT':     config('DB_PORT', default=''),
    }
}

# -------------------------------
# Internacionalização
# -------------------------------
LANGUAGE_CODE = 'pt-br'
TIME_ZONE     = 'America/Sao_Paulo'
USE_I18N      = True
USE_TZ        = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
