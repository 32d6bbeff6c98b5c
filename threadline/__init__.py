"""
Threadline check service: evaluates code changes against pattern-scoped rules
"""
