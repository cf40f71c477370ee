# PEP 440 -- Version Identification and Dependency Specification
# https://www.python.org/dev/peps/pep-0440/

__all__ = [
    '__copyright__', '__license__', '__version__'
]

__copyright__ = 'Copyright (c) 2024 ldproc contributors'
__license__ = 'BSD 3-Clause license'
__version__ = '0.4.0'
