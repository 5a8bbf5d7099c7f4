"""
Shared infrastructure for transports.

- http.py - requests session factory (User-Agent, adapter without retries)
"""
