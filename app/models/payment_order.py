from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class PaymentOrder(Document):
    """Razorpay order_id -> buyer and package, for webhook attribution."""
    order_id: Indexed(str, unique=True)
    user_id: str
    package_id: str
    credits: int
    amount: int  # minor currency units
    currency: str = "USD"
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "payment_orders"
