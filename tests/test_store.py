#!/usr/bin/env python3
"""
Tests for the in-memory profile store.
"""

from unittest.mock import Mock

import pytest

from codementor.tutoring.state import AppState, Message, Speaker, Track
from codementor.tutoring.store import (
    ProfileStore,
    get_or_create_track,
    new_profile,
    profile_id_for,
)


class TestProfiles:
    """Profile creation and selection"""

    def setup_method(self):
        self.store = ProfileStore.with_default_profile()

    def test_default_profile(self):
        """A fresh store has User 1 active"""
        profile = self.store.active_profile
        assert profile.id == 'user-1'
        assert profile.name == 'User 1'
        assert profile.state == AppState.SELECTING_LANGUAGE
        assert profile.active_language is None
        assert self.store.active_track is None

    def test_create_profile_sequential(self):
        """New profiles get the next id and become active"""
        second = self.store.create_profile()
        assert second.id == 'user-2'
        assert second.name == 'User 2'
        assert self.store.active_profile_id == 'user-2'

        named = self.store.create_profile('Ada')
        assert named.id == 'user-3'
        assert named.name == 'Ada'

    def test_create_profile_skips_taken_ids(self):
        """Ids already in use are skipped"""
        store = ProfileStore([new_profile(2)], profile_id_for(2))
        assert store.create_profile().id == 'user-3'

    def test_select_profile(self):
        """Selecting switches the active profile"""
        self.store.create_profile()
        self.store.select_profile('user-1')
        assert self.store.active_profile.id == 'user-1'

    def test_select_unknown_profile(self):
        """Unknown ids raise"""
        with pytest.raises(KeyError):
            self.store.select_profile('user-99')


class TestTracks:
    """Track creation and updates"""

    def setup_method(self):
        self.store = ProfileStore.with_default_profile()

    def test_get_or_create_track_is_pure(self):
        """The original profile is left untouched"""
        profile = new_profile(1)
        updated, track = get_or_create_track(profile, 'python')
        assert track == Track()
        assert 'python' not in profile.tracks
        assert updated.tracks['python'] is track

        again, same = get_or_create_track(updated, 'python')
        assert again is updated
        assert same is track

    def test_select_language_creates_track(self):
        """Selecting a language creates its track lazily"""
        track = self.store.select_language('user-1', 'python')
        assert track == Track()
        assert self.store.active_profile.active_language == 'python'
        assert self.store.active_track == track

    def test_select_language_keeps_existing_track(self):
        """Returning to a language finds its old track"""
        self.store.select_language('user-1', 'python')
        self.store.upsert_track('user-1', 'python', level='knows loops')
        self.store.select_language('user-1', 'go')
        track = self.store.select_language('user-1', 'python')
        assert track.level == 'knows loops'

    def test_tracks_are_independent(self):
        """Each language has its own track"""
        self.store.upsert_track('user-1', 'python', level='expert')
        self.store.upsert_track('user-1', 'go', level='beginner')
        assert self.store.get_track('user-1', 'python').level == 'expert'
        assert self.store.get_track('user-1', 'go').level == 'beginner'

    def test_commit_is_copy_on_write(self):
        """Records handed out earlier never change"""
        self.store.select_language('user-1', 'python')
        before_profile = self.store.active_profile
        before_track = self.store.active_track

        self.store.commit(
            'user-1', 'python',
            state=AppState.IN_LESSON,
            conversation=(Message(Speaker.TUTOR, 'Welcome'),),
        )

        assert before_profile.state == AppState.SELECTING_LANGUAGE
        assert before_track.conversation == ()
        assert self.store.active_profile.state == AppState.IN_LESSON
        assert self.store.active_track.conversation[0].text == 'Welcome'

    def test_commit_rejects_invalid_track(self):
        """A change breaking invariants leaves the store untouched"""
        self.store.select_language('user-1', 'python')
        with pytest.raises(ValueError):
            self.store.commit('user-1', 'python', state=AppState.IN_QUIZ, current_question_index=3)
        assert self.store.active_profile.state == AppState.SELECTING_LANGUAGE
        assert self.store.active_track == Track()

    def test_update_profile(self):
        """Profile-level fields can be replaced"""
        profile = self.store.update_profile('user-1', state=AppState.IN_LESSON)
        assert profile.state == AppState.IN_LESSON


class TestListeners:
    """Change notification"""

    def test_notified_once_per_change(self):
        """Each write notifies listeners exactly once"""
        store = ProfileStore.with_default_profile()
        listener = Mock()
        store.add_listener(listener)

        store.select_language('user-1', 'python')
        store.commit('user-1', 'python', state=AppState.IN_LESSON, level='x')
        store.create_profile()

        assert listener.call_count == 3
        listener.assert_called_with(store)

    def test_not_notified_on_rejected_change(self):
        """Failed commits do not notify"""
        store = ProfileStore.with_default_profile()
        listener = Mock()
        store.add_listener(listener)
        with pytest.raises(ValueError):
            store.commit('user-1', 'python', current_question_index=1)
        listener.assert_not_called()
