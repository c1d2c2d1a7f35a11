"""Configuration sections for building and classifying rule documents."""

from __future__ import annotations

import dataclasses

import rulemerge.config


@rulemerge.config.configurable("build")
@dataclasses.dataclass
class BuildConfig:
    # Upper bound on rules merged in parallel
    max_workers: int = 4
    log_level: str = "WARNING"
    # Manifest used when the CLI is not given one
    default_manifest: str = "build.yaml"


@rulemerge.config.configurable("classify")
@dataclasses.dataclass
class ClassifyConfig:
    # Include files are matched on their lower-cased file stem.
    languages: list[str] = dataclasses.field(
        default_factory=lambda: [
            "c",
            "cpp",
            "csharp",
            "go",
            "java",
            "javascript",
            "kotlin",
            "php",
            "python",
            "ruby",
            "rust",
            "swift",
            "typescript",
        ]
    )
    frameworks: list[str] = dataclasses.field(
        default_factory=lambda: [
            "angular",
            "django",
            "express",
            "fastapi",
            "flask",
            "laravel",
            "nextjs",
            "rails",
            "react",
            "spring",
            "svelte",
            "vue",
        ]
    )
