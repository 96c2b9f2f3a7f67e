"""Utility modules."""

from .parser import (
    clean_text,
    extract_company_from_title,
    normalize_url,
    parse_experience_years,
    parse_posted_date,
    parse_salary,
)

__all__ = [
    "clean_text",
    "extract_company_from_title",
    "normalize_url",
    "parse_experience_years",
    "parse_posted_date",
    "parse_salary",
]
