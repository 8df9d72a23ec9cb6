"""Message classification, routing and handlers."""
