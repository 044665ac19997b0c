"""
Lookup tables mapping contact and agent identifiers to Salesforce record IDs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .normalize import normalize_agent_key, normalize_email, normalize_phone
from .records import AgentReference, ContactReference


@dataclass(frozen=True)
class AgentInfo:
    agent_id: str
    display_name: str | None


@dataclass
class IdentityMap:
    """
    Contact and agent lookup tables built once per run.

    Attributes:
        emails: lower-cased email -> contact ID (last write wins).
        phones: normalized phone -> contact ID (last write wins).
        agents: lower-cased username or display name -> AgentInfo. The username
            (or name fallback) index overwrites; the secondary display-name index
            only fills keys that are still empty.
    """

    emails: dict[str, str] = field(default_factory=dict)
    phones: dict[str, str] = field(default_factory=dict)
    agents: dict[str, AgentInfo] = field(default_factory=dict)
    contact_count: int = 0
    agent_count: int = 0

    def resolve_contact(self, email: object | None, phone: object | None) -> str | None:
        """Email match takes priority over phone match."""

        email_key = normalize_email(email)
        if email_key:
            contact_id = self.emails.get(email_key)
            if contact_id:
                return contact_id
        phone_key = normalize_phone(phone)
        if phone_key:
            return self.phones.get(phone_key)
        return None

    def resolve_agent(self, key: object | None) -> AgentInfo | None:
        agent_key = normalize_agent_key(key)
        if not agent_key:
            return None
        return self.agents.get(agent_key)

    def as_dict(self) -> dict[str, int]:
        return {
            "contacts": self.contact_count,
            "agents": self.agent_count,
            "email_keys": len(self.emails),
            "phone_keys": len(self.phones),
            "agent_keys": len(self.agents),
        }


def build_identity_map(
    contacts: Iterable[ContactReference],
    agents: Iterable[AgentReference],
) -> IdentityMap:
    identity = IdentityMap()

    for contact in contacts:
        identity.contact_count += 1
        email_key = normalize_email(contact.email)
        if email_key:
            identity.emails[email_key] = contact.id
        for raw_phone in (contact.phone, contact.mobile_phone):
            phone_key = normalize_phone(raw_phone)
            if phone_key:
                identity.phones[phone_key] = contact.id

    for agent in agents:
        identity.agent_count += 1
        info = AgentInfo(agent_id=agent.id, display_name=agent.name)
        primary_key = normalize_agent_key(agent.external_username or agent.name)
        if primary_key:
            identity.agents[primary_key] = info
        name_key = normalize_agent_key(agent.name)
        if name_key:
            identity.agents.setdefault(name_key, info)

    return identity
