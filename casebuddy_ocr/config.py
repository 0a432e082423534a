"""
config.py

Configuration module for the document extraction pipeline.

Purpose:
--------
Contains the policy constants used across the module: rasterization
scale, recognition concurrency, cloud model settings, entity and
summary heuristics, and input limits.

Design Principle:
-----------------
Configuration is isolated from business logic.
Changing a cap or a scale factor should not require editing
the extraction code; every function that reads a constant also
accepts a keyword override.
"""

# -----------------------------
# Rasterization
# -----------------------------
PDF_POINTS_PER_INCH = 72
RASTER_SCALE = 2.0  # Render PDF pages at 2x nominal resolution

# -----------------------------
# Local recognition engine
# -----------------------------
USE_GPU = True  # Auto-detect CUDA, fallback to CPU

# -----------------------------
# Concurrency
# -----------------------------
RECOGNITION_WORKERS = 1  # 1 = sequential page-by-page recognition
BATCH_WORKERS = 4

# -----------------------------
# Cloud recognition (Groq)
# -----------------------------
GROQ_API_KEY_ENV = "GROQ_API_KEY"
GROQ_VISION_MODEL = "meta-llama/llama-4-scout-17b-16e-instruct"
GROQ_TEMPERATURE = 0.0
GROQ_MAX_IMAGES_PER_REQUEST = 5

# -----------------------------
# Entity extraction
# -----------------------------
MAX_NAMES = 10
NAME_STOP_WORDS = frozenset(
    [
        "The",
        "This",
        "That",
        "Dear",
        "From",
        "Your",
        "Sincerely",
        "Yours",
        "Very",
        "Best",
        "Regards",
    ]
)

# -----------------------------
# Summary
# -----------------------------
SUMMARY_MAX_SENTENCES = 3
SUMMARY_MIN_SENTENCE_CHARS = 20
SUMMARY_MAX_CHARS = 200
SUMMARY_ELLIPSIS = "..."
SUMMARY_FALLBACK = "No readable content extracted from the document."

# -----------------------------
# Input limits
# -----------------------------
MAX_FILE_SIZE_MB = 50
ACCEPTED_MEDIA_TYPES = [
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/webp",
]
EXTENSION_MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}
