from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
ORDER_EMAIL_ASYNC = False

RAZORPAY_BASE_URL = 'https://api.razorpay.test/v1'
RAZORPAY_TIMEOUT = 5
