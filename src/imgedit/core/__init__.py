"""
Core modules for imgedit.

This package contains the core business logic for:
- Configuration management
- Image encoding
- Edit requests against the image service
- The editing session state machine
"""
