"""fooddesk - pricing, checkout and order engine for a food-ordering storefront."""

__version__ = "0.1.0"
