from app.core.services.payment.stripe import Stripe

__all__ = ["Stripe"]
