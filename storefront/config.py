# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale de l'API boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, MonCash, NatCash, Twilio)
- Expose les constantes de tarification (livraison, taxe, points, limites de commande)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces, guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_float(name: str, default: float) -> float:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default

def _env_int(name: str, default: int) -> int:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default

# Supabase: URL et clés (anon/service)
# - SUPABASE_URL peut être fourni sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / CORS / hôtes
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000")
FRONTEND_URL = _clean_env(os.getenv("FRONTEND_URL") or "http://localhost:5173")

# Stripe: clé secrète, secret webhook, pages de retour
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_CURRENCY = _clean_env(os.getenv("STRIPE_CURRENCY") or "htg").lower()
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/order-confirmation")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/checkout?payment=cancel")

# MonCash (Digicel)
MONCASH_CLIENT_ID = _clean_env(os.getenv("MONCASH_CLIENT_ID") or "")
MONCASH_CLIENT_SECRET = _clean_env(os.getenv("MONCASH_CLIENT_SECRET") or "")
MONCASH_MODE = _clean_env(os.getenv("MONCASH_MODE") or "sandbox").lower()

# NatCash (Natcom)
NATCASH_MERCHANT_ID = _clean_env(os.getenv("NATCASH_MERCHANT_ID") or "")
NATCASH_SECRET_KEY = _clean_env(os.getenv("NATCASH_SECRET_KEY") or "")
NATCASH_MODE = _clean_env(os.getenv("NATCASH_MODE") or "sandbox").lower()
NATCASH_MERCHANT_NUMBER = _clean_env(os.getenv("NATCASH_MERCHANT_NUMBER") or "4040-0000")

# Twilio (messages WhatsApp)
TWILIO_ACCOUNT_SID = _clean_env(os.getenv("TWILIO_ACCOUNT_SID") or "")
TWILIO_AUTH_TOKEN = _clean_env(os.getenv("TWILIO_AUTH_TOKEN") or "")
TWILIO_WHATSAPP_NUMBER = _clean_env(os.getenv("TWILIO_WHATSAPP_NUMBER") or "whatsapp:+14155238886")

# Tarification (HTG)
DEFAULT_CURRENCY = "HTG"
FREE_SHIPPING_THRESHOLD = _env_float("FREE_SHIPPING_THRESHOLD", 5000)
FLAT_SHIPPING_COST = _env_float("FLAT_SHIPPING_COST", 250)
TAX_RATE = _env_float("TAX_RATE", 0.10)
WARRANTY_PRICE = _env_float("WARRANTY_PRICE", 500)

# Points fidélité
POINTS_VALUE_HTG = _env_int("POINTS_VALUE_HTG", 10)
POINTS_MAX_PERCENT = _env_int("POINTS_MAX_PERCENT", 20)
POINTS_MIN_ORDER_HTG = _env_float("POINTS_MIN_ORDER_HTG", 1000)
POINTS_EXPIRY_DAYS = _env_int("POINTS_EXPIRY_DAYS", 365)

# Wallet / crédit Union Pay
DEFAULT_CREDIT_LIMIT = _env_float("DEFAULT_CREDIT_LIMIT", 50000)

# Limites de commande
MAX_ORDER_TOTAL = _env_float("MAX_ORDER_TOTAL", 10_000_000)
MAX_ORDER_ITEMS = _env_int("MAX_ORDER_ITEMS", 50)
MAX_ITEM_QUANTITY = _env_int("MAX_ITEM_QUANTITY", 100)

# Relance du paiement MonCash
PAYMENT_MAX_RETRIES = _env_int("PAYMENT_MAX_RETRIES", 3)
PAYMENT_RETRY_DELAY = _env_float("PAYMENT_RETRY_DELAY", 1.0)
