"""Seller Match: counts a page's ads.txt sellers found in a trusted sellers.json registry.

The package is organised by concern:
- ``registry``: fetching and caching the seller registry
- ``extraction``/``browser``: reading seller ids declared by a page
- ``scan``: session tracking, scheduling and matching
- ``services``: settings, badge presentation and request routing
"""
