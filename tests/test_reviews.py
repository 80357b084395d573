"""
Tests for the Review Store
"""

import pytest

from app.models import ReviewData
from app.services.errors import AccessDeniedError, InvalidInputError, NotFoundError
from app.services.reviews import REVIEWS, get_review, get_user_reviews, save_review
from app.services.saved_reviews import save_review_for_later
from app.services.users import save_user

REPO = "octo-org/api"
REPO_URL = "https://github.com/octo-org/api"


@pytest.fixture
def user_id(store, clerk_id):
    return save_user(store, clerk_id, "dev@example.com")


class TestSaveReview:
    """Tests for saving review results."""

    def test_round_trip(self, store, clerk_id, user_id, make_review_data, clock):
        """Test that the stored payload reads back exactly as saved."""
        payload = make_review_data(with_sentry=True)
        review_id = save_review(store, clerk_id, REPO, REPO_URL, payload)

        review = get_review(store, clerk_id, review_id)

        assert review.review_data.to_document() == payload
        assert review.repo_name == REPO
        assert review.repo_url == REPO_URL
        assert review.user_id == user_id
        assert review.created_at == clock.now

    def test_accepts_model(self, store, clerk_id, user_id, make_review_data):
        """Test that a parsed ReviewData is accepted as well as a dict."""
        data = ReviewData.model_validate(make_review_data())
        review_id = save_review(store, clerk_id, REPO, REPO_URL, data)

        assert store.get(REVIEWS, review_id)["review_data"] == data.to_document()

    def test_second_save_replaces(self, store, clerk_id, user_id, make_review_data, clock):
        """Test that re-reviewing a repository updates the same row."""
        first = save_review(store, clerk_id, REPO, REPO_URL, make_review_data(critical=1))
        clock.advance(60_000)
        second = save_review(store, clerk_id, REPO, REPO_URL, make_review_data(critical=4))

        assert first == second
        rows = store.query(REVIEWS, "by_user_repo", user_id, REPO)
        assert len(rows) == 1
        assert rows[0]["review_data"]["summary"]["criticalIssues"] == 4
        assert rows[0]["created_at"] == clock.now

    def test_same_repo_different_users(self, store, clerk_id, other_clerk_id, user_id, make_review_data):
        """Test that two users reviewing one repository get separate rows."""
        save_user(store, other_clerk_id, "other@example.com")

        mine = save_review(store, clerk_id, REPO, REPO_URL, make_review_data())
        theirs = save_review(store, other_clerk_id, REPO, REPO_URL, make_review_data())

        assert mine != theirs
        assert len(store.query(REVIEWS, "by_repo", REPO)) == 2

    def test_unknown_user(self, store, make_review_data):
        """Test that saving requires a signed-in user."""
        with pytest.raises(NotFoundError, match="User not found. Please sign in again."):
            save_review(store, "user_ghost", REPO, REPO_URL, make_review_data())

    @pytest.mark.parametrize("repo_name,repo_url", [("", REPO_URL), (REPO, ""), ("  ", REPO_URL)])
    def test_missing_fields(self, store, clerk_id, user_id, make_review_data, repo_name, repo_url):
        """Test that repository name and URL are required."""
        with pytest.raises(InvalidInputError, match="Failed to save review"):
            save_review(store, clerk_id, repo_name, repo_url, make_review_data())

    def test_missing_review_data(self, store, clerk_id, user_id):
        """Test that the payload is required."""
        with pytest.raises(InvalidInputError):
            save_review(store, clerk_id, REPO, REPO_URL, None)


class TestReadReviews:
    """Tests for reading reviews back."""

    def test_newest_first(self, store, clerk_id, user_id, make_review_data, clock):
        """Test that reviews are listed newest first."""
        for name in ("o/one", "o/two", "o/three"):
            save_review(store, clerk_id, name, REPO_URL, make_review_data())
            clock.advance()

        assert [r.repo_name for r in get_user_reviews(store, clerk_id)] == ["o/three", "o/two", "o/one"]

    def test_unknown_user_has_no_reviews(self, store):
        """Test that an unknown user reads an empty list."""
        assert get_user_reviews(store, "user_ghost") == []

    def test_saved_state(self, store, clerk_id, user_id, make_review_data):
        """Test that getReview reports the caller's bookmark."""
        review_id = save_review(store, clerk_id, REPO, REPO_URL, make_review_data())
        assert get_review(store, clerk_id, review_id).is_saved is False

        save_review_for_later(store, clerk_id, review_id, notes="fix before release")
        review = get_review(store, clerk_id, review_id)

        assert review.is_saved is True
        assert review.saved_notes == "fix before release"

    def test_other_users_review_denied(self, store, clerk_id, other_clerk_id, user_id, make_review_data):
        """Test that a review owned by someone else is not readable."""
        save_user(store, other_clerk_id, "other@example.com")
        review_id = save_review(store, clerk_id, REPO, REPO_URL, make_review_data())

        with pytest.raises(AccessDeniedError, match="Access denied"):
            get_review(store, other_clerk_id, review_id)

    def test_access_denied_is_not_found(self):
        """Test that callers catching NotFoundError also catch denials."""
        assert issubclass(AccessDeniedError, NotFoundError)

    def test_unknown_review(self, store, clerk_id, user_id):
        """Test that an unknown id is not found."""
        with pytest.raises(NotFoundError, match="Review not found"):
            get_review(store, clerk_id, "missing")
