"""Stock record import.

This module reads unpacked archive records and bulk-loads them into
the basics collection and one collection per feed.
"""
