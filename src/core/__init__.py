"""Core domain package for zodiacast.

Core contains generation, caching, fanout, and broadcast logic without any
Telegram, OpenAI, or storage-specific code, keeping the business logic portable.
"""
