"""Core pipeline: timestamps, fields, queue, dispatcher and sender."""
