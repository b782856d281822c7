"""Inference, metrics, cache and summary resources."""
