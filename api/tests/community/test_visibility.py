"""Tests for post visibility and vote tallies."""

import pytest

from skillwise.auth.permissions import UserRole
from skillwise.community.models import Post, PostPrivacy, can_view, tally_votes


@pytest.fixture
def author(make_user):
    return make_user()


def _post(author, privacy: PostPrivacy) -> Post:
    return Post(author_id=author.id, author_name=author.name, privacy=privacy.value)


class TestCanView:
    def test_public_is_visible_to_everyone(self, author, make_user) -> None:
        assert can_view(_post(author, PostPrivacy.PUBLIC), make_user())

    @pytest.mark.parametrize("privacy", list(PostPrivacy))
    def test_author_always_sees_own_post(self, author, privacy) -> None:
        assert can_view(_post(author, privacy), author)

    def test_friends_post_visible_to_friends(self, author, make_user) -> None:
        friend = make_user(friends={author.id})
        assert can_view(_post(author, PostPrivacy.FRIENDS), friend)

    def test_friends_post_hidden_from_strangers(self, author, make_user) -> None:
        assert not can_view(_post(author, PostPrivacy.FRIENDS), make_user())

    def test_only_me_hidden_from_friends(self, author, make_user) -> None:
        friend = make_user(friends={author.id})
        assert not can_view(_post(author, PostPrivacy.ONLY_ME), friend)

    def test_admin_sees_everything(self, author, make_user) -> None:
        admin = make_user(UserRole.ADMIN)
        assert can_view(_post(author, PostPrivacy.ONLY_ME), admin)


class TestTallyVotes:
    def test_counts_per_option(self) -> None:
        assert tally_votes([0, 2, 2, 1, 2], 3) == [1, 1, 3]

    def test_votes_for_removed_options_are_dropped(self) -> None:
        assert tally_votes([0, 3, 5], 2) == [1, 0]

    def test_no_votes(self) -> None:
        assert tally_votes([], 4) == [0, 0, 0, 0]
