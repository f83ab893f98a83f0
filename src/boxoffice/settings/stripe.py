from decouple import config

DEFAULT_CURRENCY = config("DEFAULT_CURRENCY", default="CAD")
STRIPE_SECRET_KEY = config("STRIPE_SECRET_KEY", default="sk_test_...")
STRIPE_PUBLISHABLE_KEY = config("STRIPE_PUBLISHABLE_KEY", default="pk_test_...")
STRIPE_WEBHOOK_SECRET = config("STRIPE_WEBHOOK_SECRET", default="whsec_...")
# Currencies Stripe expects in whole units rather than cents
STRIPE_ZERO_DECIMAL_CURRENCIES = ("JPY", "KRW", "VND")
