from .parser import TerminatorInserter, parse_source, read_source

__all__ = ["TerminatorInserter", "parse_source", "read_source"]
