"""
Market Gateway Service
Public market-data gateway combining asset-pair reference data, live rates,
historical rates, candles and order books from independent backing stores.
"""

__version__ = "1.0.0"
__author__ = "Market Gateway Team"
__description__ = "Public market data gateway with historical rate reconciliation"
