"""Group model for speakers playing together."""

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Group:
    """A playback group (one or more speakers acting as one).

    Attributes:
        id: Stable unique group identifier from the household topology.
        name: Display name (the coordinator's room name).
        member_names: Ordered room names of the group members.
        host: IP address of the group coordinator.
    """

    id: str
    name: str = ""
    member_names: list[str] = field(default_factory=list)
    host: str = ""

    @property
    def full_name(self) -> str:
        """Return all member room names joined, e.g. "Kitchen + Living Room"."""
        if not self.member_names:
            return self.name
        return " + ".join(self.member_names)

    @property
    def member_count(self) -> int:
        """Return the number of speakers in this group."""
        return len(self.member_names)

    def display_name(self, full: bool = False) -> str:
        """Return the name to show for this group.

        Args:
            full: Use the joined member names instead of the group name.
        """
        return self.full_name if full else self.name or self.id
