"""
Solana Wallet Tracker: cross-reference token holders to find coordinated wallets.
"""

__version__ = "0.1.0"
