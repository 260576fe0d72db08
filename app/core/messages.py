BOOK_MESSAGES = {
    "CREATED": "Book created successfully",
    "RETRIEVED": "Book retrieved successfully",
    "RETRIEVED_ALL": "Books retrieved successfully",
    "UPDATED": "Book updated successfully",
    "DELETED": "Book deleted successfully",
    "SEARCH_COMPLETED": "Search completed successfully",
    "NOT_FOUND": "Book not found",
    "DUPLICATE_ISBN": "Book with this ISBN already exists",
}

DATABASE_MESSAGES = {
    "DUPLICATE_CONSTRAINT": "Duplicate entry. This ISBN already exists.",
    "RECORD_NOT_FOUND": "Resource not found",
}

GENERAL_MESSAGES = {
    "INTERNAL_SERVER_ERROR": "Internal server error",
    "VALIDATION_FAILED": "Validation failed",
    "ROUTE_NOT_FOUND": "Route not found",
    "SERVER_RUNNING": "Server is running",
    "TOO_MANY_REQUESTS": "Too many requests from this IP, please try again later.",
}


def wishlist_available_message(book_title: str, user_id) -> str:
    return f"Notification prepared for user_id: {user_id}: Book [{book_title}] is now available."


def wishlist_processed_message(count: int, book_title: str) -> str:
    return f"Processed {count} wishlist notifications for book: {book_title}"


WISHLIST_PROCESSING_ERROR = "Error processing wishlist notifications"
