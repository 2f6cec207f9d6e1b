"""
Commit history mining: turns `git log --numstat` output into per-file statistics.
"""

import logging
import math
import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .config import (
    DEFAULT_BRANCH,
    WINDOW_SIZE_DAYS,
    MAX_COMMITS,
    MAX_HISTORY_BYTES,
    GIT_LOG_FORMAT,
    BUG_FIX_KEYWORDS,
    FEATURE_KEYWORDS,
    REFACTOR_KEYWORDS,
    SOURCE_EXTENSIONS,
)
from .exceptions import (
    RepositoryNotFoundError,
    InvalidRepositoryError,
    BranchNotFoundError,
    HistoryQueryError,
    HistoryTooLargeError,
)

log = logging.getLogger(__name__)

# "<added>\t<removed>\t<path>"; binary files report "-" for both counts
NUMSTAT_LINE = re.compile(r'^(\d+|-)\t(\d+|-)\t(.+)$')

# "src/{old => new}/file.py" and "{old.py => new.py}"
BRACE_RENAME = re.compile(r'^(.*)\{([^{}]*) => ([^{}]*)\}(.*)$')


# =============================================================================
# COMMIT RECORDS
# =============================================================================

class CommitCategory(str, Enum):
    BUG_FIX = 'bug_fix'
    FEATURE = 'feature'
    REFACTOR = 'refactor'


_CATEGORY_KEYWORDS = {
    CommitCategory.BUG_FIX: BUG_FIX_KEYWORDS,
    CommitCategory.FEATURE: FEATURE_KEYWORDS,
    CommitCategory.REFACTOR: REFACTOR_KEYWORDS,
}


def classify_commit(message: str) -> frozenset[CommitCategory]:
    """Tag a commit subject with every category whose keywords it contains"""
    text = message.lower()
    return frozenset(
        category for category, keywords in _CATEGORY_KEYWORDS.items()
        if any(kw in text for kw in keywords)
    )


class FileChange(NamedTuple):
    added: int
    removed: int
    path: str


@dataclass
class CommitRecord:
    """One entry of the git log, with its numstat lines"""
    hash: str
    author: str
    timestamp: datetime
    message: str
    changes: list[FileChange] = field(default_factory=list)

    @property
    def categories(self) -> frozenset[CommitCategory]:
        return classify_commit(self.message)


def parse_git_log(output: str) -> list[CommitRecord]:
    """Parse `git log --numstat --format=%H|%ae|%at|%s` output into commit records"""
    commits = []
    current = None

    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue

        numstat = NUMSTAT_LINE.match(line)
        if numstat:
            added, removed, path = numstat.groups()
            if current is None or added == '-' or removed == '-':
                continue
            current.changes.append(FileChange(int(added), int(removed), path))
            continue

        # Subjects may contain '|' themselves, so only split off the first three fields
        parts = line.split('|', 3)
        if len(parts) == 4 and parts[2].isdigit():
            commit_hash, author, timestamp, message = parts
            current = CommitRecord(
                hash=commit_hash,
                author=author,
                timestamp=datetime.fromtimestamp(int(timestamp), tz=timezone.utc),
                message=message,
            )
            commits.append(current)
        else:
            log.debug('Skipping unrecognized git log line: %r', line)

    return commits


# =============================================================================
# RENAME TRACKING
# =============================================================================

def _join_path(prefix: str, middle: str, suffix: str) -> str:
    # git leaves one side of "{ => dir}" empty, which doubles the separator
    path = re.sub(r'/{2,}', '/', prefix + middle.strip() + suffix)
    return path.lstrip('/')


def parse_rename(raw_path: str) -> tuple[str, str | None] | None:
    """
    Split a numstat path into (current_path, old_path).

    old_path is None when the line is not a rename. Returns None for deleted
    files and for paths that still look like rename notation after parsing.
    """
    if not raw_path or raw_path == '/dev/null' or '\0' in raw_path:
        return None

    path = raw_path.strip()
    old_path = None

    match = BRACE_RENAME.match(path)
    if match:
        prefix, old, new, suffix = match.groups()
        old_path = _join_path(prefix, old, suffix)
        path = _join_path(prefix, new, suffix)
    elif ' => ' in path:
        parts = path.split(' => ')
        if len(parts) == 2:
            old_path, path = parts[0].strip(), parts[1].strip()

    if not path or path == '/dev/null':
        return None
    if '=>' in path or '{' in path or '}' in path:
        return None

    return path, old_path


class PathMapping:
    """Historical path -> newer path, learned while walking the log newest-first"""

    def __init__(self):
        self._renames: dict[str, str] = {}

    def record(self, old_path: str, new_path: str):
        if not old_path:
            return
        # Point straight at the terminal path. A rename back to a path that
        # is already current records nothing.
        target = self.resolve(new_path)
        if target != old_path:
            self._renames[old_path] = target

    def resolve(self, path: str) -> str:
        """Follow the rename chain to the file's current path"""
        seen = {path}
        while True:
            target = self._renames.get(path)
            if target is None or target in seen:
                return path
            seen.add(target)
            path = target

    def __len__(self):
        return len(self._renames)

    def __contains__(self, path):
        return path in self._renames


def is_source_file(filepath: str) -> bool:
    return Path(filepath).suffix.lower() in SOURCE_EXTENSIONS


# =============================================================================
# AGGREGATION
# =============================================================================

@dataclass
class FileHistory:
    """Aggregated change history of one file over the analysis window"""
    module: str
    filename: str
    repo_name: str
    commits: int
    authors: int
    author_names: list[str]
    lines_added: int
    lines_deleted: int
    churn: int
    bug_commits: int
    feature_commits: int
    refactor_commits: int
    lines_per_author: float
    churn_per_commit: float
    bug_ratio: float
    days_active: int
    commits_per_day: float
    created_at: datetime | None = None
    last_modified: datetime | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FileStats:
    """Running totals for one canonical path"""
    first_commit: datetime
    last_commit: datetime
    lines_added: int = 0
    lines_deleted: int = 0
    commits: int = 0
    authors: set[str] = field(default_factory=set)
    bug_commits: int = 0
    feature_commits: int = 0
    refactor_commits: int = 0

    def add(self, change: FileChange, author: str, timestamp: datetime,
            categories: frozenset[CommitCategory]):
        self.lines_added += change.added
        self.lines_deleted += change.removed
        self.commits += 1
        self.authors.add(author)

        if CommitCategory.BUG_FIX in categories:
            self.bug_commits += 1
        if CommitCategory.FEATURE in categories:
            self.feature_commits += 1
        if CommitCategory.REFACTOR in categories:
            self.refactor_commits += 1

        self.first_commit = min(self.first_commit, timestamp)
        self.last_commit = max(self.last_commit, timestamp)

    def to_history(self, path: str, repo_name: str) -> FileHistory:
        seconds = (self.last_commit - self.first_commit).total_seconds()
        days_active = max(math.ceil(seconds / 86400), 1)
        num_authors = len(self.authors)
        churn = self.lines_added + self.lines_deleted

        return FileHistory(
            module=path,
            filename=path,
            repo_name=repo_name,
            commits=self.commits,
            authors=num_authors,
            author_names=sorted(self.authors),
            lines_added=self.lines_added,
            lines_deleted=self.lines_deleted,
            churn=churn,
            bug_commits=self.bug_commits,
            feature_commits=self.feature_commits,
            refactor_commits=self.refactor_commits,
            lines_per_author=self.lines_added / num_authors if num_authors > 0 else 0,
            churn_per_commit=churn / self.commits if self.commits > 0 else 0,
            bug_ratio=self.bug_commits / self.commits if self.commits > 0 else 0,
            days_active=days_active,
            commits_per_day=self.commits / days_active,
            created_at=self.first_commit,
            last_modified=self.last_commit,
        )


def aggregate_commits(commits: list[CommitRecord], repo_root: str | Path,
                      only_existing_files: bool = True) -> list[FileHistory]:
    """
    Fold commit records into one FileHistory per canonical source path.

    Commits must be ordered newest first (git log order) so that renames are
    known before the older commits that still use the previous path.
    """
    repo_root = Path(repo_root)
    mapping = PathMapping()
    file_stats: dict[str, FileStats] = {}
    exists_cache: dict[str, bool] = {}

    for commit in commits:
        categories = classify_commit(commit.message)

        for change in commit.changes:
            parsed = parse_rename(change.path)
            if parsed is None:
                continue

            current_path, old_path = parsed
            if old_path:
                mapping.record(old_path, current_path)
            canonical = mapping.resolve(current_path)

            if not is_source_file(canonical):
                continue

            if only_existing_files:
                if canonical not in exists_cache:
                    exists_cache[canonical] = (repo_root / canonical).exists()
                if not exists_cache[canonical]:
                    continue

            stats = file_stats.get(canonical)
            if stats is None:
                stats = file_stats[canonical] = FileStats(
                    first_commit=commit.timestamp,
                    last_commit=commit.timestamp,
                )
            stats.add(change, commit.author, commit.timestamp, categories)

    if not file_stats:
        log.warning('No source files found in commits')
        return []

    if len(mapping):
        log.debug('Consolidated history across %d renamed paths', len(mapping))

    repo_name = repo_root.resolve().name
    return [stats.to_history(path, repo_name) for path, stats in file_stats.items()]


# =============================================================================
# GIT ACCESS
# =============================================================================

class GitCommitCollector:
    """Collects per-file change statistics from a local git repository"""

    def __init__(self, repo_path: str | Path, branch: str = DEFAULT_BRANCH,
                 window_size_days: int = WINDOW_SIZE_DAYS, max_commits: int = MAX_COMMITS,
                 only_existing_files: bool = True):
        self.repo_path = Path(repo_path)
        self.branch = branch
        self.window_size_days = window_size_days
        self.max_commits = max_commits
        self.only_existing_files = only_existing_files

        if not self.repo_path.exists():
            raise RepositoryNotFoundError(repo_path)

        try:
            self.repo = Repo(self.repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise InvalidRepositoryError(repo_path) from e

        try:
            self.repo.git.rev_parse('--verify', '--quiet', f'{branch}^{{commit}}')
        except GitCommandError as e:
            raise BranchNotFoundError(branch, repo_path) from e

        log.info('Initialized git repository: %s', self.repo_path)
        log.info('Using branch: %s', branch)
        log.info('Window size: %d days', window_size_days)

    def _query_history(self, max_commits: int) -> str:
        """Run the numstat log query for the configured branch and window"""
        # quotepath=off keeps non-ASCII paths readable instead of octal-escaped
        git = self.repo.git(c='core.quotepath=off')
        try:
            output = git.log(
                f'--max-count={max_commits}',
                '--numstat',
                '--find-renames',
                f'--format={GIT_LOG_FORMAT}',
                f'--since={self.window_size_days} days ago',
                '--no-merges',
                self.branch,
                '--',
            )
        except GitCommandError as e:
            raise HistoryQueryError(f'git log failed for branch {self.branch}: {e}') from e

        size = len(output.encode('utf-8', errors='surrogateescape'))
        if size > MAX_HISTORY_BYTES:
            raise HistoryTooLargeError(size, MAX_HISTORY_BYTES)
        return output

    def fetch_commit_data(self, max_commits: int | None = None) -> list[FileHistory]:
        """Aggregate the branch's recent history into per-file records"""
        max_commits = max_commits or self.max_commits
        log.info('Fetching commits from %s (branch: %s)', self.repo_path, self.branch)
        log.info('Max commits: %d', max_commits)

        commits = parse_git_log(self._query_history(max_commits))
        log.info('Found %d commits in the last %d days', len(commits), self.window_size_days)

        histories = aggregate_commits(commits, self.repo_path, self.only_existing_files)
        if histories:
            log.info('Aggregated history for %d source files', len(histories))
        return histories
