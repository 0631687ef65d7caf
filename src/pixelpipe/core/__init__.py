"""
Core modules for pixelpipe.

This package contains the core logic for:
- Configuration management
- Image decoding and encoding
- Template asset caching
- Filters and the filter registry
- Pipeline execution
"""
