# lit_curation/__init__.py

"""
Research-curation pipeline: topic -> keywords -> literature search ->
PDF download -> metadata/introduction extraction -> claim verification ->
final review.
"""

__version__ = "0.1.0"
