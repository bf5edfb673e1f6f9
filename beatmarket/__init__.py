"""Beat marketplace API: catalog, Stripe checkout, fulfillment and downloads."""

__version__ = "0.1.0"
