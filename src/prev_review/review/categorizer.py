"""
File Categorizer

Assigns a change category and a topical group to each enriched file.
Groups come from path heuristics; the first matching rule wins.
"""

import re
from pathlib import PurePosixPath

from ..diffparse.models import EnrichedFileChange, FileChange
from .models import CategorizedFile, ChangeCategory, FileGroup


class FileCategorizer:
    """Categorize files by change type and path."""

    # Test files by name
    TEST_FILES = [
        r"_test\.(go|py)$",
        r"\.(test|spec)\.(js|ts)$",
        r"(^|/)test_[^/]*\.py$",
    ]

    # Test directories (matched against the parent directory)
    TEST_DIRS = [
        r"^tests?",
        r"__tests__",
    ]

    COMMAND_DIRS = [r"^cmd"]

    DOC_DIRS = [r"^docs", r"^doc/"]
    DOC_FILES = [r"\.md$"]

    DEPENDENCY_FILES = {
        "go.mod", "go.sum", "package.json", "package-lock.json",
        "yarn.lock", "Pipfile", "Pipfile.lock", "requirements.txt",
        "Cargo.toml", "Cargo.lock", "pom.xml", "build.gradle",
    }

    CI_FILES = {
        "Dockerfile", "docker-compose.yml", "docker-compose.yaml",
        "Makefile", ".goreleaser.yml", ".goreleaser.yaml",
    }
    CI_DIRS = [r"^\.github", r"^\.gitlab-ci", r"^\.circleci"]

    CORE_DIRS = [r"^internal", r"^pkg", r"^lib", r"^src"]

    def __init__(self):
        self._test_files = [re.compile(p) for p in self.TEST_FILES]
        self._test_dirs = [re.compile(p) for p in self.TEST_DIRS]
        self._command_dirs = [re.compile(p) for p in self.COMMAND_DIRS]
        self._doc_dirs = [re.compile(p) for p in self.DOC_DIRS]
        self._doc_files = [re.compile(p) for p in self.DOC_FILES]
        self._ci_dirs = [re.compile(p) for p in self.CI_DIRS]
        self._core_dirs = [re.compile(p) for p in self.CORE_DIRS]

    def detect_category(self, change: FileChange) -> ChangeCategory:
        if change.is_binary:
            return ChangeCategory.BINARY
        if change.is_new:
            return ChangeCategory.NEW
        if change.is_deleted:
            return ChangeCategory.DELETED
        if change.is_renamed:
            return ChangeCategory.RENAMED
        return ChangeCategory.MODIFIED

    def detect_group(self, path: str) -> FileGroup:
        posix = PurePosixPath(path)
        name = posix.name
        directory = posix.parent.as_posix()

        if _any(self._test_files, path) or _any(self._test_dirs, directory):
            return FileGroup.TESTS
        if _any(self._command_dirs, directory):
            return FileGroup.COMMANDS
        if _any(self._doc_dirs, directory) or _any(self._doc_files, path):
            return FileGroup.DOCS
        if name in self.DEPENDENCY_FILES:
            return FileGroup.DEPENDENCIES
        if name in self.CI_FILES or _any(self._ci_dirs, directory):
            return FileGroup.CI_CONFIG
        if _any(self._core_dirs, directory):
            return FileGroup.CORE
        return FileGroup.OTHER

    def categorize(self, efc: EnrichedFileChange) -> CategorizedFile:
        return CategorizedFile(
            enriched=efc,
            category=self.detect_category(efc.change),
            group=self.detect_group(efc.change.path),
        )

    def categorize_all(self, changes: list[EnrichedFileChange]) -> list[CategorizedFile]:
        return [self.categorize(efc) for efc in changes]


def _any(patterns: list[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def categorize_changes(changes: list[EnrichedFileChange]) -> list[CategorizedFile]:
    """Assign category and group to each enriched file change."""
    return FileCategorizer().categorize_all(changes)
