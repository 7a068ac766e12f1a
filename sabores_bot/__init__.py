"""WhatsApp bot for the Sabores da Dori home bakery."""

__version__ = "1.0.0"
