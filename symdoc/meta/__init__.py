"""Symbol metadata model shared by the decoder, the merge engine and generators.

The model holds:
- Entities (namespaces, records, functions, enums, typedefs) and their parts
- References between entities, tagged with the slot they fill
- Documentation comment trees
"""
