"""Scope of a format configuration.

A format config belongs either to one organisation, one structure, one
barcode group, or to nobody (the global default). When several ids are
given the organisation wins over the structure, and the structure over
the group.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BarcodeContext:
    """Normalized (organisation, structure, group) scope.

    Ids are stored as strings (UUID support); '' means unset.
    """

    organisation_id: str = ''
    structure_id: str = ''
    group_id: str = ''

    @classmethod
    def normalize(cls, value=None) -> "BarcodeContext":
        """
        Build a context from None, a dict, a 3-tuple or a BarcodeContext.

        Only the highest-precedence id is kept.

        Usage:
            BarcodeContext.normalize({'organisation_id': 3})
            BarcodeContext.normalize((None, 12, None))
        """
        if value is None:
            return cls()
        if isinstance(value, cls):
            organisation_id, structure_id, group_id = (
                value.organisation_id, value.structure_id, value.group_id
            )
        elif isinstance(value, dict):
            organisation_id = value.get('organisation_id')
            structure_id = value.get('structure_id')
            group_id = value.get('group_id')
        else:
            organisation_id, structure_id, group_id = value

        if organisation_id:
            return cls(organisation_id=str(organisation_id))
        if structure_id:
            return cls(structure_id=str(structure_id))
        if group_id:
            return cls(group_id=str(group_id))
        return cls()

    @property
    def is_global(self) -> bool:
        return not (self.organisation_id or self.structure_id or self.group_id)

    def as_filter(self) -> dict:
        """Field lookups matching this context exactly."""
        return {
            'organisation_id': self.organisation_id,
            'structure_id': self.structure_id,
            'group_id': self.group_id,
        }

    def __str__(self):
        if self.organisation_id:
            return f"organisation:{self.organisation_id}"
        if self.structure_id:
            return f"structure:{self.structure_id}"
        if self.group_id:
            return f"group:{self.group_id}"
        return "global"
