from typing import NewType

# identifier assigned by the export tool, only meaningful within one import run
SourceId = NewType("SourceId", str)
# primary key of a row in our database
PersistedId = NewType("PersistedId", int)

IdMap = dict[SourceId, PersistedId]
NaturalKey = tuple
