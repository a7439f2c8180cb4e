"""Assistant Marketplace — backend API.

Users browse AI assistants, place orders for their services and review
completed orders. This package holds the REST API, its persistence layer
and a small command-line client.
"""

__version__ = "1.0.0"
