"""API boutique Union: paniers, checkout multi-paiements et fidélité."""

__version__ = "0.1.0"
