"""Exception hierarchy for spm-export."""


class SpmExportError(Exception):
    """Base class for all errors raised by spm_export."""


class ConfigError(SpmExportError):
    """Invalid configuration file or value that cannot be recovered."""


class LoadError(SpmExportError):
    """A data file could not be read or is not a supported format."""


class EngineError(SpmExportError):
    """A processing module failed or does not exist."""


class BatchError(SpmExportError):
    """Fatal batch error (e.g. an input directory cannot be listed)."""
