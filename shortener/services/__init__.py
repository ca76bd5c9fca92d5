"""
Services module for business logic separation.

- code_generator: deterministic short codes
- deletion_pipeline: bounded stream feeding batch deletions
- url_service: URLShorteningService, the facade the transport layer calls
"""
