"""
Legal documents: PDF layout, templates and the review workflow.
"""
