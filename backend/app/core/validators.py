"""Reusable parameter validators."""

from typing import Annotated

from fastapi import Path

# Positive integer ID validator for path parameters
PositiveIntId = Annotated[int, Path(gt=0, description="Resource ID (must be positive)")]
