# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du service storefront.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, Redis, webhook)
- Expose les paramètres métier: TTL des sessions de checkout, fenêtre de confirmation,
  numérotation des commandes, durées côté client (intake, confettis)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default

# Supabase: URLs et clés (anon/service)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clé secrète, secret webhook et devise des line_items
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_CURRENCY = _clean_env(os.getenv("STRIPE_CURRENCY") or "usd").lower()

# Backends des stores: "memory" (défaut, mono-process) ou redis/supabase
CHECKOUT_STORE_BACKEND = _clean_env(os.getenv("CHECKOUT_STORE_BACKEND") or "memory").lower()
CHECKOUT_REDIS_URL = _clean_env(os.getenv("CHECKOUT_REDIS_URL") or "redis://127.0.0.1:6379/1")
ORDER_STORE_BACKEND = _clean_env(os.getenv("ORDER_STORE_BACKEND") or "memory").lower()

# Sessions de checkout: doivent survivre à l'aller-retour vers la page de paiement (>= 30 min)
MIN_CHECKOUT_SESSION_TTL_SECONDS = 30 * 60
CHECKOUT_SESSION_TTL_SECONDS = max(
    _int_env("CHECKOUT_SESSION_TTL_SECONDS", 24 * 60 * 60),
    MIN_CHECKOUT_SESSION_TTL_SECONDS,
)

# Fenêtre pendant laquelle /thank-you?order=... expose la commande
CONFIRMATION_WINDOW_SECONDS = _int_env("CONFIRMATION_WINDOW_SECONDS", 10 * 60)

# Numérotation lisible des commandes: PREFIX-3001, PREFIX-3002, ...
ORDER_NUMBER_PREFIX = _clean_env(os.getenv("ORDER_NUMBER_PREFIX") or "FASHO")
ORDER_NUMBER_START = _int_env("ORDER_NUMBER_START", 3001)

# Webhook sortant (signup / achat). Vide => notifications désactivées
WEBHOOK_URL = _clean_env(os.getenv("WEBHOOK_URL") or "")
WEBHOOK_TIMEOUT_SECONDS = _int_env("WEBHOOK_TIMEOUT_SECONDS", 5)

# Côté client post-achat
INTAKE_STATUS_TIMEOUT_SECONDS = _int_env("INTAKE_STATUS_TIMEOUT_SECONDS", 5)
CONFETTI_DURATION_SECONDS = _int_env("CONFETTI_DURATION_SECONDS", 5)

# Cookies / CORS / hôtes
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000")
DASHBOARD_PATH = os.getenv("DASHBOARD_PATH", "/dashboard")
