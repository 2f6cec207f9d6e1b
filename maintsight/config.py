"""
Configuration and constants for MaintSight.
"""

import os
from pathlib import Path

# =============================================================================
# REPOSITORY SETTINGS
# =============================================================================

DEFAULT_BRANCH = 'main'
WINDOW_SIZE_DAYS = 150
MAX_COMMITS = 10000

# git log output above this size is refused rather than truncated
MAX_HISTORY_BYTES = 50 * 1024 * 1024

GIT_LOG_FORMAT = '%H|%ae|%at|%s'

# =============================================================================
# COMMIT CLASSIFICATION
# =============================================================================

# Case-insensitive substring match on the commit subject.
# A commit can land in several categories at once.
BUG_FIX_KEYWORDS = ('fix', 'bug', 'patch', 'hotfix', 'bugfix')
FEATURE_KEYWORDS = ('feat', 'feature', 'add', 'implement')
REFACTOR_KEYWORDS = ('refactor', 'clean', 'improve')

# =============================================================================
# SOURCE FILES
# =============================================================================

# Matched against the lowercased extension
SOURCE_EXTENSIONS = frozenset({
    # JavaScript / TypeScript
    '.js', '.ts', '.jsx', '.tsx', '.mjs', '.cjs', '.vue', '.svelte',
    # Python
    '.py', '.pyx', '.pyi', '.pyw',
    # JVM
    '.java', '.kt', '.kts', '.scala', '.groovy', '.gradle',
    # C / C++
    '.c', '.cpp', '.cxx', '.cc', '.c++', '.h', '.hpp', '.hxx', '.hh', '.h++',
    # .NET
    '.cs', '.vb', '.fs', '.fsx', '.fsi',
    # Mobile
    '.swift', '.m', '.mm', '.dart',
    # Web
    '.php', '.rb', '.perl', '.pl', '.pm',
    # Systems
    '.go', '.rs', '.zig', '.nim', '.d',
    # Functional
    '.hs', '.lhs', '.elm', '.ml', '.mli', '.clj', '.cljs', '.cljc',
    # Data science
    '.r', '.jl', '.ipynb',
    # SQL and migrations
    '.sql', '.mysql', '.pgsql', '.plsql', '.tsql', '.ddl', '.dml', '.migration',
    # Graph / query languages
    '.cypher', '.gql', '.graphql',
    # Shell
    '.sh', '.bash', '.zsh', '.fish', '.ps1', '.bat', '.cmd',
    # Infrastructure as code
    '.tf', '.hcl', '.yaml', '.yml', '.toml',
    # Smart contracts
    '.sol', '.cairo', '.move', '.vy',
    # Other languages
    '.lua', '.crystal', '.ex', '.exs', '.erl', '.hrl', '.pas', '.pp', '.inc',
    '.dpr', '.dpk', '.asm', '.s', '.rkt', '.scm', '.lisp', '.cl',
    # Templates with logic
    '.erb', '.ejs', '.handlebars', '.hbs', '.mustache', '.twig',
    # CSS preprocessors
    '.scss', '.sass', '.less', '.styl',
    # Server pages
    '.asp', '.aspx', '.jsp', '.cfm', '.cfml',
    # IDL
    '.proto', '.thrift', '.avsc', '.avdl',
    # Build scripts
    '.sbt', '.mill', '.bazel', '.bzl', '.buck',
    # Package specs
    '.podspec', '.gemspec', '.nuspec',
})

# =============================================================================
# FEATURE COLUMNS
# =============================================================================

# Counters produced by the commit aggregator
BASE_FEATURE_COLS = [
    'commits', 'authors', 'lines_added', 'lines_deleted', 'churn',
    'bug_commits', 'refactor_commits', 'feature_commits',
    'lines_per_author', 'churn_per_commit', 'bug_ratio',
    'days_active', 'commits_per_day',
]

# Ratios derived by the feature engineer
ENGINEERED_FEATURE_COLS = [
    'degradation_days', 'net_lines', 'code_stability', 'is_high_churn_commit',
    'bug_commit_rate', 'commits_squared', 'author_concentration',
    'lines_per_commit', 'churn_rate', 'modification_ratio',
    'churn_per_author', 'deletion_rate', 'commit_density',
]

# Positional order the model was trained on. Do not reorder.
FEATURE_NAMES = BASE_FEATURE_COLS + ENGINEERED_FEATURE_COLS

HIGH_CHURN_PER_COMMIT = 100

# =============================================================================
# MODEL & CALIBRATION
# =============================================================================

MODEL_PATH = Path(os.environ.get(
    'MAINTSIGHT_MODEL_PATH',
    Path(__file__).parent / 'models' / 'xgboost-model.json',
))

DEFAULT_BASE_SCORE = 0.5

# Label column expected by the training command
TARGET_COL = 'degradation_score'

# Distribution of the degradation labels the model was trained on
TRAIN_MEAN = -0.011
TRAIN_STD = 0.082
TRAIN_MIN = -0.531
TRAIN_MAX = 0.566
CALIBRATION_MARGIN = 0.1

# Inclusive upper bounds: <0 improved, <=0.1 stable, <=0.2 degraded
STABLE_MAX = 0.1
DEGRADED_MAX = 0.2

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get('MAINTSIGHT_LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
