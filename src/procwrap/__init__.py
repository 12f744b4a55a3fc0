"""procwrap - Python wrappers for PostgreSQL stored procedures.

Reads a schema's procedure catalog, recovers each procedure's parameter list
from its definition and writes a `procedures.py` module exposing one async
wrapper pair per procedure.
"""

__version__ = "0.1.0"
