"""
Exception hierarchy for MaintSight.
"""


class MaintSightError(Exception):
    """Base exception for all MaintSight errors"""


# =============================================================================
# REPOSITORY ERRORS
# =============================================================================

class RepositoryError(MaintSightError):
    """Problems with the repository being analyzed"""


class RepositoryNotFoundError(RepositoryError):
    def __init__(self, path):
        super().__init__(f'Repository path does not exist: {path}')
        self.path = path


class InvalidRepositoryError(RepositoryError):
    def __init__(self, path):
        super().__init__(f'Invalid git repository: {path}')
        self.path = path


class BranchNotFoundError(RepositoryError):
    def __init__(self, branch: str, path):
        super().__init__(f"Branch '{branch}' not found in {path}")
        self.branch = branch
        self.path = path


class HistoryQueryError(RepositoryError):
    """git log failed"""


class HistoryTooLargeError(RepositoryError):
    def __init__(self, size: int, limit: int):
        super().__init__(
            f'git log produced {size} bytes, above the {limit} byte limit. '
            f'Lower --max-commits or --window-size-days.'
        )
        self.size = size
        self.limit = limit


# =============================================================================
# TRAINING ERRORS
# =============================================================================

class DatasetError(MaintSightError):
    """The training dataset could not be read or lacks required columns"""


# =============================================================================
# MODEL ERRORS
# =============================================================================

class ModelError(MaintSightError):
    """Problems with the tree ensemble"""


class ModelLoadError(ModelError):
    """The model artifact could not be read or has no usable structure"""


class ModelNotLoadedError(ModelError):
    def __init__(self):
        super().__init__('Model not loaded. Call load_model() first.')
