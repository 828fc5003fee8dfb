"""symdoc — decode per-unit symbol containers and merge them into one corpus."""

__version__ = "0.3.0"
