"""Custom exceptions for the system-swap pipeline.

Every fatal condition raises one of these; advisory findings are returned
as ValidationWarning objects instead.

Exception Hierarchy:
    SwapError (base)
        ├── DependencyError
        │   └── MissingToolError
        ├── InputError
        │   ├── ImageNotFoundError
        │   ├── EmptyImageError
        │   └── SuperImageValidationError
        ├── WorkspaceError
        ├── TransformError
        │   ├── ConversionError
        │   ├── UnpackError
        │   ├── SystemReplaceError
        │   └── RepackError
        ├── PackageError
        │   ├── ArchiveError
        │   └── PackageVerificationError
        └── UserAbortedError

Usage:
    from super_gsi.storage.exceptions import ImageNotFoundError

    if not path.is_file():
        raise ImageNotFoundError(str(path))
"""


class SwapError(Exception):
    """Base exception for all pipeline failures."""



class DependencyError(SwapError):
    """Base exception for missing external collaborators."""



class MissingToolError(DependencyError):
    """A required executable is not on PATH."""

    def __init__(self, tool: str, install_hint: str = ""):
        self.tool = tool
        self.install_hint = install_hint
        msg = f"{tool} is not installed"
        if install_hint:
            msg += f" (install with: {install_hint})"
        super().__init__(msg)


class InputError(SwapError):
    """Base exception for unusable user input."""



class ImageNotFoundError(InputError):
    """Input path does not exist or is not a regular file."""

    def __init__(self, path: str, resolved: str = ""):
        self.path = path
        self.resolved = resolved
        msg = f"File not found: {path}"
        if resolved and resolved != path:
            msg += f" (resolved to {resolved})"
        super().__init__(msg)


class EmptyImageError(InputError):
    """Input file exists but has zero length."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File is empty: {path}")


class SuperImageValidationError(InputError):
    """Super image cannot be parsed or lacks a system partition."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Super image validation failed for {path}: {reason}")


class WorkspaceError(SwapError):
    """Working directory could not be prepared."""

    def __init__(self, message: str, path: str = None):
        self.path = path
        super().__init__(message)


class TransformError(SwapError):
    """Base exception for image transformation failures."""



class ConversionError(TransformError):
    """Sparse to raw conversion failed."""

    def __init__(self, source: str, reason: str = ""):
        self.source = source
        self.reason = reason
        msg = f"Failed to convert sparse image to raw: {source}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnpackError(TransformError):
    """lpunpack could not extract the super image."""

    def __init__(self, image: str, reason: str = ""):
        self.image = image
        self.reason = reason
        msg = f"Failed to extract partitions from {image}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class SystemReplaceError(TransformError):
    """The GSI could not be written in place of system.img."""

    def __init__(self, message: str, gsi: str = None):
        self.gsi = gsi
        super().__init__(message)


class RepackError(TransformError):
    """lpmake did not produce an output image, even after the retry."""

    def __init__(self, output: str, reason: str = ""):
        self.output = output
        self.reason = reason
        msg = f"Failed to create super image {output}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PackageError(SwapError):
    """Base exception for Odin packaging failures."""



class ArchiveError(PackageError):
    """The tar archive could not be created."""

    def __init__(self, message: str, archive: str = None):
        self.archive = archive
        super().__init__(message)


class PackageVerificationError(PackageError):
    """Trailer digest does not match the archive contents."""

    def __init__(self, archive: str, expected: str, actual: str):
        self.archive = archive
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"MD5 mismatch for {archive}: trailer says {expected}, "
            f"archive hashes to {actual}"
        )


class UserAbortedError(SwapError):
    """User declined to continue past an advisory warning."""

    def __init__(self, reason: str = "Operation cancelled by user"):
        self.reason = reason
        super().__init__(reason)
