#!/usr/bin/env python3
"""
Profile and track store.

Pure containers: every change builds new Profile/Track records with
``dataclasses.replace`` and swaps them in, so readers holding an older record
never see it change. Listeners are told after each completed change.
"""

import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .state import AppState, Profile, Track

logger = logging.getLogger(__name__)

StoreListener = Callable[['ProfileStore'], None]


def profile_id_for(number: int) -> str:
    return f'user-{number}'


def profile_name_for(number: int) -> str:
    return f'User {number}'


def new_profile(number: int, name: Optional[str] = None) -> Profile:
    return Profile(id=profile_id_for(number), name=name or profile_name_for(number))


def get_or_create_track(profile: Profile, language: str) -> Tuple[Profile, Track]:
    """Return the profile's track for ``language``, creating a default one if absent"""
    existing = profile.tracks.get(language)
    if existing is not None:
        return profile, existing
    track = Track()
    tracks = dict(profile.tracks)
    tracks[language] = track
    return replace(profile, tracks=tracks), track


class ProfileStore:
    """Owns every profile and which one is active"""

    def __init__(
        self,
        profiles: Iterable[Profile] = (),
        active_profile_id: Optional[str] = None,
    ):
        self._profiles: Dict[str, Profile] = {p.id: p for p in profiles}
        self.active_profile_id = active_profile_id
        self._listeners: List[StoreListener] = []

    @classmethod
    def with_default_profile(cls) -> 'ProfileStore':
        profile = new_profile(1)
        return cls([profile], profile.id)

    # Listeners

    def add_listener(self, listener: StoreListener):
        self._listeners.append(listener)

    def _notify(self):
        for listener in self._listeners:
            listener(self)

    # Reads

    @property
    def profiles(self) -> List[Profile]:
        return list(self._profiles.values())

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        return self._profiles.get(profile_id)

    @property
    def active_profile(self) -> Optional[Profile]:
        if self.active_profile_id is None:
            return None
        return self._profiles.get(self.active_profile_id)

    @property
    def active_track(self) -> Optional[Track]:
        """Derived from the active profile and its selected language"""
        profile = self.active_profile
        return profile.active_track if profile else None

    def get_track(self, profile_id: str, language: str) -> Optional[Track]:
        profile = self._profiles.get(profile_id)
        return profile.tracks.get(language) if profile else None

    # Writes

    def _require(self, profile_id: str) -> Profile:
        profile = self._profiles.get(profile_id)
        if profile is None:
            raise KeyError(f"Unknown profile: {profile_id}")
        return profile

    def create_profile(self, name: Optional[str] = None) -> Profile:
        """Add a profile with the next sequential id and make it active"""
        number = len(self._profiles) + 1
        while profile_id_for(number) in self._profiles:
            number += 1
        profile = new_profile(number, name)
        self._profiles[profile.id] = profile
        self.active_profile_id = profile.id
        logger.info("Created profile %s (%s)", profile.id, profile.name)
        self._notify()
        return profile

    def select_profile(self, profile_id: str) -> Profile:
        profile = self._require(profile_id)
        self.active_profile_id = profile_id
        self._notify()
        return profile

    def select_language(self, profile_id: str, language: str) -> Track:
        """Point the profile at ``language``, creating its track lazily"""
        profile, track = get_or_create_track(self._require(profile_id), language)
        self._profiles[profile_id] = replace(profile, active_language=language)
        self._notify()
        return track

    def update_profile(self, profile_id: str, **fields) -> Profile:
        profile = replace(self._require(profile_id), **fields)
        self._profiles[profile_id] = profile
        self._notify()
        return profile

    def upsert_track(self, profile_id: str, language: str, **fields) -> Track:
        """Merge ``fields`` into the track, creating it if it does not exist yet"""
        return self.commit(profile_id, language, **fields)

    def commit(
        self,
        profile_id: str,
        language: str,
        state: Optional[AppState] = None,
        **fields
    ) -> Track:
        """
        Apply track field changes and an optional profile state change as one step.

        The new track is built (and its invariants checked) before anything is
        swapped in, so a rejected change leaves the store untouched.
        """
        profile, track = get_or_create_track(self._require(profile_id), language)
        updated = replace(track, **fields)
        tracks = dict(profile.tracks)
        tracks[language] = updated
        changes = {'tracks': tracks}
        if state is not None:
            changes['state'] = state
        self._profiles[profile_id] = replace(profile, **changes)
        self._notify()
        return updated
