from pydantic import BaseModel


class WishlistNotification(BaseModel):
    """One prepared (not delivered) notification for a wishlisting user."""

    user_id: int
    book_id: int
    message: str


class NotificationResult(BaseModel):
    processed: int
    message: str
