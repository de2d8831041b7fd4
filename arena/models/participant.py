"""
Participant records stored on a tournament.

The shape is decided by the tournament mode: Solo tournaments hold
IndividualParticipant entries, Duo/Squad tournaments hold TeamParticipant
entries.
"""
from enum import Enum
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class MemberRole(str, Enum):
    LEADER = "leader"
    MEMBER = "member"


class TeamMember(BaseModel):
    user_id: str = ""  # Empty for teammates entered manually by the leader
    ign: str
    uid: str
    role: MemberRole = MemberRole.MEMBER


class IndividualParticipant(BaseModel):
    kind: Literal["individual"] = "individual"
    custom_uid: str  # In-game player id
    ign: str
    auth_uid: str  # Platform account id

    @property
    def payer_id(self) -> str:
        return self.auth_uid

    @property
    def winner_uid(self) -> str:
        return self.custom_uid

    @property
    def winner_ign(self) -> str:
        return self.ign


class TeamParticipant(BaseModel):
    kind: Literal["team"] = "team"
    team_id: str
    leader_id: str
    team_name: str
    members: List[TeamMember]

    @property
    def leader(self) -> TeamMember:
        for member in self.members:
            if member.role == MemberRole.LEADER:
                return member
        return self.members[0]

    @property
    def payer_id(self) -> str:
        return self.leader_id

    @property
    def winner_uid(self) -> str:
        return self.leader.uid

    @property
    def winner_ign(self) -> str:
        return self.leader.ign


Participant = Annotated[
    Union[IndividualParticipant, TeamParticipant],
    Field(discriminator="kind"),
]

_participants_adapter = TypeAdapter(List[Participant])


def load_participants(raw: list) -> List[Union[IndividualParticipant, TeamParticipant]]:
    return _participants_adapter.validate_python(raw or [])


def dump_participants(participants: list) -> list:
    return [p.model_dump(mode="json") for p in participants]
