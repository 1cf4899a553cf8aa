"""Data models for event proposals."""
from dataclasses import dataclass, field
from typing import List


@dataclass
class TimingPreference:
    """Availability note left by one person."""
    name: str
    preference: str


@dataclass
class Event:
    """Proposed social gathering with votes and volunteer lists."""
    id: str
    name: str
    submitter: str
    created_at: str
    description: str = ''
    votes: int = 0
    hosts: List[str] = field(default_factory=list)
    organizers: List[str] = field(default_factory=list)
    timing_preferences: List[TimingPreference] = field(default_factory=list)
