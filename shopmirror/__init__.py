"""Mirror Shopify orders, products and customers into a SQL database."""

__version__ = "0.1.0"
