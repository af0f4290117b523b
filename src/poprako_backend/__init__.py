"""
PopRaKo Backend - project interchange for collaborative comic translation

This package converts a comic's per-page translation units to and from
external project files and merges imported files back into stored pages:

- LabelPlus plain-text export and import
- Poprako JSON import with strict validation
- Transactional, role-aware merging that never lets a translator import
  overwrite proofread pages

Key Components:
    - comments: Translator/proofreader comment splitting and merging
    - labelplus: LabelPlus header validation and line-scanning parser
    - poprako: Poprako JSON decoding, validation and normalisation
    - export: LabelPlus serializer and export file naming
    - merge: Positional page matching and unit replacement
    - database: SQLite page/unit store with a transaction boundary
    - project_service: Import/export entry points used by the HTTP layer
    - main: FastAPI application
    - configuration: OmegaConf-based settings

Usage:
    Run the API server with:
        uvicorn poprako_backend.main:app --reload --host 0.0.0.0 --port 8000
"""
