"""HEXROUTE - water-only route planning over an H3 hexagonal grid."""

__version__ = "0.3.0"
