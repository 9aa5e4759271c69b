"""
HTTP surface over the inference pipeline.
"""
