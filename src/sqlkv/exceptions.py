"""sqlkv exceptions."""


class KVError(Exception):
    """Base exception for sqlkv."""

    pass


class InvalidKeyError(KVError):
    """Key is empty, holds an unsupported part, or cannot be decoded."""

    pass


class InvalidOptionError(KVError):
    """Operation option is out of range or not allowed in this combination."""

    pass


class InvalidConfigError(InvalidOptionError):
    """Store was constructed with invalid settings."""

    pass


class ConfigError(KVError):
    """Configuration file or backend selection error."""

    pass


class BackendError(KVError):
    """The storage driver failed to execute a statement."""

    pass
