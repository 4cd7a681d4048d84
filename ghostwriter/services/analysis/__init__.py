"""Engagement scoring, style extraction and the analysis pipeline."""
