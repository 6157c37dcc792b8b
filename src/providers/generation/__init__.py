"""Generation providers.

HttpGenerationProvider posts the assembled document text to the
contrarreferencia generation endpoint.
"""
