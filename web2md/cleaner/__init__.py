"""Cleaner package — DOM noise removal and normalisation."""

from web2md.cleaner.cleaner import clean_html
from web2md.cleaner.passes import CLEANING_PASSES, CleanContext
from web2md.cleaner.title import extract_title

__all__ = ["clean_html", "extract_title", "CleanContext", "CLEANING_PASSES"]
