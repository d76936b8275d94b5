"""Archive revision tracking.

This module lists remote archive revisions and downloads new ones.
It records the newest processed revision as a watermark.
"""
