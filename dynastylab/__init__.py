"""
DynastyLab screenshot ingestion.

Turns in-game screenshots into structured dynasty records: classify the screen,
extract its data with a vision model, let a human review it, then route it into
the domain stores and flag newsworthy results for content generation.
"""

__version__ = "1.0.0"
