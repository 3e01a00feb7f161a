"""Chunked extraction and aggregation pipeline for real-estate brochure PDFs."""
