"""
External service integrations for the news intake pipeline.
"""
