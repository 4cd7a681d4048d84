"""
Services layer: onboarding, analysis, retrieval, validation and memory.
"""
