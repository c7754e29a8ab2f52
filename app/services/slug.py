"""
Validación y generación de slugs de familia (la URL pública /<slug>).
"""
from __future__ import annotations

import re
import secrets
from typing import Optional, Tuple

SLUG_PATTERN = re.compile(r"[a-z0-9-]+")
MIN_LENGTH = 3
MAX_LENGTH = 50

# Rutas de la aplicación que no pueden usarse como slug
RESERVED_SLUGS = frozenset({
    "account", "api", "coming-soon", "family-manager", "family-select",
    "setup", "sphome", "login", "auth", "context", "globals", "layout",
    "metadata", "page", "template",
})

ADJECTIVES = [
    "happy", "sunny", "brave", "gentle", "bright", "calm", "clever", "cozy",
    "cuddly", "eager", "fuzzy", "jolly", "kind", "little", "lucky", "merry",
    "playful", "quiet", "silly", "sleepy", "snug", "sweet", "tiny", "witty",
]

ANIMALS = [
    "bear", "bunny", "cub", "duck", "fawn", "fox", "kitten", "koala", "lamb",
    "lion", "otter", "owl", "panda", "penguin", "puppy", "seal", "swan",
    "tiger", "turtle", "whale", "wolf", "zebra",
]


def validate_slug(slug: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Devuelve (es_valido, mensaje_de_error)."""
    if not slug or not slug.strip():
        return False, "Slug is required"
    if not SLUG_PATTERN.fullmatch(slug):
        return False, "Slug may only contain lowercase letters, numbers and hyphens"
    if len(slug) < MIN_LENGTH:
        return False, f"Slug must be at least {MIN_LENGTH} characters long"
    if len(slug) > MAX_LENGTH:
        return False, f"Slug must be at most {MAX_LENGTH} characters long"
    if slug.startswith("-") or slug.endswith("-") or "--" in slug:
        return False, "Slug cannot start or end with a hyphen or contain consecutive hyphens"
    if slug in RESERVED_SLUGS:
        return False, "This slug is reserved by the system"
    return True, None


def generate_slug() -> str:
    return f"{secrets.choice(ADJECTIVES)}-{secrets.choice(ANIMALS)}"


def generate_slug_with_number(digits: int = 4) -> str:
    number = secrets.randbelow(10 ** digits)
    return f"{generate_slug()}-{number:0{digits}d}"
