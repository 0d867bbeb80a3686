"""
Football data resolver.
Classifies a query, asks several sources concurrently, reconciles their answers
under a fixed precedence and returns one validated, provenance-tagged record.
"""
