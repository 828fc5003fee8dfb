"""Container format: reading and writing per-unit symbol metadata.

Layers, bottom up:
1. Cursor — structural tokens and raw records
2. Fields — raw records to typed values
3. Dispatch — nested blocks to symbol objects
4. Reader/Writer — whole containers
"""
