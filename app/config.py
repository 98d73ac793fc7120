# api_relawan/app/config.py

import os
from dotenv import load_dotenv

# Panggil load_dotenv() di awal untuk memuat file .env
load_dotenv()

class BaseConfig:
    # Nilai default atau placeholder
    TIMEZONE = 'Asia/Jakarta'
    SUPABASE_URL = ""
    SUPABASE_SERVICE_ROLE_KEY = ""
    JSON_SORT_KEYS = False

    # Batas baris per query PostgREST (default Supabase: 1000)
    FETCH_PAGE_SIZE = 1000

    CHECKIN_CODE_LENGTH = 6
    CHECKIN_CODE_MAX_ATTEMPTS = 5
    AUDIT_LOG_LIMIT = 50
    PASSWORD_MIN_LENGTH = 6

    # Base URL dashboard, untuk redirect link undangan (/auth/callback)
    SITE_URL = ""

    # WAHA (WhatsApp HTTP API)
    WAHA_TIMEOUT = 15

    # Konfigurasi Celery
    CELERY_BROKER_URL = 'redis://localhost:6379/0'
    CELERY_RESULT_BACKEND = 'redis://localhost:6379/0'
    WA_SYNC_INTERVAL_MINUTES = 0

class DevConfig(BaseConfig):
    DEBUG = True

class ProdConfig(BaseConfig):
    DEBUG = False

class TestConfig(BaseConfig):
    TESTING = True
    DEBUG = False
    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'

def load_config(app, config_object=None):
    """Memuat konfigurasi berdasarkan lingkungan dan variabel .env."""
    if config_object is not None:
        # Dipakai oleh tests: jangan ambil nilai dari environment.
        app.config.from_object(config_object)
        return

    env = os.getenv("FLASK_ENV", "development").lower()
    if env == "production":
        app.config.from_object(ProdConfig)
    else:
        app.config.from_object(DevConfig)

    # Muat variabel dari .env secara eksplisit ke dalam app.config.
    # Ini menimpa nilai default di BaseConfig jika ada di .env.
    app.config.update(
        TIMEZONE = os.getenv('TIMEZONE', 'Asia/Jakarta'),
        SUPABASE_URL = os.getenv("SUPABASE_URL", ""),
        SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
        FETCH_PAGE_SIZE = int(os.getenv('FETCH_PAGE_SIZE', '1000')),
        CHECKIN_CODE_LENGTH = int(os.getenv('CHECKIN_CODE_LENGTH', '6')),
        CHECKIN_CODE_MAX_ATTEMPTS = int(os.getenv('CHECKIN_CODE_MAX_ATTEMPTS', '5')),
        AUDIT_LOG_LIMIT = int(os.getenv('AUDIT_LOG_LIMIT', '50')),
        PASSWORD_MIN_LENGTH = int(os.getenv('PASSWORD_MIN_LENGTH', '6')),
        SITE_URL = os.getenv('SITE_URL', ''),
        WAHA_TIMEOUT = float(os.getenv('WAHA_TIMEOUT', '15')),

        # Variabel Celery
        CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0'),
        CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0'),
        WA_SYNC_INTERVAL_MINUTES = int(os.getenv('WA_SYNC_INTERVAL_MINUTES', '0')),
    )
