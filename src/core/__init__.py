"""Core domain package for promodiff.

Core contains normalization, key generation, diffing, and cross-source
matching without any file, network, or Telegram code, keeping the business
logic portable.
"""
