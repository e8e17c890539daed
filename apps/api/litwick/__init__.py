"""Litwick transcription billing API."""
