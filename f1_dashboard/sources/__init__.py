"""
Source adapters. Each one normalizes a single upstream format (historical
results API, live timing API, Wikipedia season and race articles) into the
shared models and degrades to empty data on failure.
"""
