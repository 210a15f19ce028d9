"""
Google OAuth connection and live Apps Script listing.
"""
