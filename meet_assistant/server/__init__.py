"""HTTP server exposing the transcription, summary and Q&A endpoints."""
