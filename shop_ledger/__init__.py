"""
Shop Ledger

Point-of-sale backend for a small shop: clients, products, credit sales,
loan repayment, stock levels and the analytics derived from them, all kept
in a single JSON snapshot.
"""

__version__ = "1.0.0"
