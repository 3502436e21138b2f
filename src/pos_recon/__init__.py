"""
POS Recon - order financial reconciliation and report aggregation

Turns raw point-of-sale order and line-item records into consistent
revenue, tax and discount figures and rolls them up by date, product,
employee, customer and sales channel.
"""

__version__ = "0.1.0"

from . import reporting
from . import utils

__all__ = ["reporting", "utils"]
