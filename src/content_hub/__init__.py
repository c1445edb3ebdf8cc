"""
Content Hub backend: multi-tenant domains, brand guides and content briefs over MongoDB,
with publishing, scheduling and hero images delegated to external collaborators.
"""

__version__ = "1.0.0"
