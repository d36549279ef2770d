"""
Multi-source reconciliation: source selection, TTL policy, scraped-season
assembly and standings derivation.
"""
