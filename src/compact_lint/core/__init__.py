"""Analysis pipeline: scanner, extractors, rule engine, checks, assembler."""
