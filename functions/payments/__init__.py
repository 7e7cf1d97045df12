"""
Thin REST wrappers around the payment providers used by the functions.
"""
