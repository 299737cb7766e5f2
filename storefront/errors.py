"""
Erreurs métier du storefront.

Deux familles atteignent l'utilisateur:
- intégrité du checkout (session introuvable / déjà consommée): "recommencez le checkout"
- visibilité de la commande (introuvable / fenêtre expirée)
Les intégrations best-effort (intake, webhook) échouent « ouvert »: leurs erreurs
sont journalisées puis ignorées au point d'appel.
"""


class StorefrontError(Exception):
    """Racine des erreurs métier."""


# --- Entrées invalides (bug appelant) ---
class EmptyCartError(StorefrontError):
    def __init__(self, message: str = "Le panier est vide"):
        super().__init__(message)


class UnknownPackageError(StorefrontError):
    def __init__(self, package_id: str):
        self.package_id = package_id
        super().__init__(f"Package inconnu: {package_id}")


class UnknownAddonError(StorefrontError):
    def __init__(self, addon_id: str):
        self.addon_id = addon_id
        super().__init__(f"Addon inconnu: {addon_id}")


class InvalidCouponError(StorefrontError):
    def __init__(self, message: str = "Code promo invalide"):
        super().__init__(message)


# --- Intégrité du checkout ---
class CheckoutIntegrityError(StorefrontError):
    reason = "checkout_integrity"

    def __init__(self, session_id: str, message: str):
        self.session_id = session_id
        super().__init__(message)


class SessionNotFoundError(CheckoutIntegrityError):
    reason = "session_not_found"

    def __init__(self, session_id: str):
        super().__init__(session_id, "Session de paiement introuvable ou expirée, veuillez recommencer le checkout")


class SessionAlreadyConsumedError(CheckoutIntegrityError):
    reason = "already_used"

    def __init__(self, session_id: str):
        super().__init__(session_id, "Cette session de paiement a déjà été utilisée, veuillez recommencer le checkout")


class PaymentNotConfirmedError(StorefrontError):
    def __init__(self, payment_status: str):
        self.payment_status = payment_status
        super().__init__(f"Paiement non confirmé (payment_status={payment_status})")


# --- Visibilité de la commande ---
class OrderVisibilityError(StorefrontError):
    def __init__(self, order_number: str, message: str):
        self.order_number = order_number
        super().__init__(message)


class OrderNotFound(OrderVisibilityError):
    def __init__(self, order_number: str):
        super().__init__(order_number, "Commande introuvable")


class OrderExpired(OrderVisibilityError):
    def __init__(self, order_number: str):
        super().__init__(
            order_number,
            "Le récapitulatif de commande n'est visible que 10 minutes après le paiement. "
            "Retrouvez votre commande dans votre tableau de bord.",
        )


class OrderUnavailable(OrderVisibilityError):
    """Service de confirmation injoignable ou réponse illisible: l'utilisateur peut réessayer."""

    def __init__(self, order_number: str, cause: str = ""):
        self.cause = cause
        super().__init__(order_number, "Impossible de charger la commande pour le moment, veuillez réessayer.")


# --- Intégrations best-effort ---
class IntakeCheckFailed(StorefrontError):
    pass


class WebhookDeliveryFailed(StorefrontError):
    pass
