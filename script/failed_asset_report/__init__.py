"""
Failed Asset Reporting: export failed CSPM audit assets for every account under a license.
"""
__version__ = "1.0.0"
