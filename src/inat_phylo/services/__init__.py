"""
Shared service utilities.

- http.py - ``requests.Session`` factory with retry, backoff and a default timeout
"""
