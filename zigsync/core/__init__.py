from .models import SitemapEntry, DetailSections, JobPosting, Tombstone
from .normalize import normalize_education, extract_education, map_employment_types, rich_text_to_plain
from .sections import classify_sections

__all__ = [
    "SitemapEntry",
    "DetailSections",
    "JobPosting",
    "Tombstone",
    "normalize_education",
    "extract_education",
    "map_employment_types",
    "rich_text_to_plain",
    "classify_sections",
]
