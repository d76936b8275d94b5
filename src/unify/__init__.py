"""Stock unification.

This module joins basics and feed collections into one document per stock.
"""
