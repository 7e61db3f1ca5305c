DEFAULT_DEFINITION_CONTRACT_VERSION = "v1"
DEFAULT_DEFINITION_COMPAT_POLICY = "strict"


def build_definition_repository(*args: object, **kwargs: object):
    from assignment_extract.lib.artifacts.factory import build_definition_repository as _build_definition_repository

    return _build_definition_repository(*args, **kwargs)


__all__ = ["DEFAULT_DEFINITION_CONTRACT_VERSION", "DEFAULT_DEFINITION_COMPAT_POLICY", "build_definition_repository"]
