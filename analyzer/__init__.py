"""
Contract risk analyzer: PDF extraction, tiered LLM analysis and result caching.
"""
__version__ = "1.0.0"
