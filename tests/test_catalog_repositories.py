"""
Tests for catalog maintenance repositories: books, members and labels.

Counters are covered by the ledger tests; here we care about descriptive
fields, reference checks and the rules that pin rows with history.
"""

import pytest

from librarydb.database import (
    AuthorRepository,
    BookCreateSchema,
    BookRepository,
    BookUpdateSchema,
    ConflictError,
    DuplicateError,
    GenreRepository,
    LabelSchema,
    MemberCreateSchema,
    MemberRepository,
    MemberUpdateSchema,
    NotFoundError,
    PaginationParams,
    PublisherRepository,
)
from librarydb.models import MembershipStatus


class TestBookRepository:
    def test_new_book_has_every_copy_available(self, db):
        with db.session_scope() as session:
            book = BookRepository(session).create(BookCreateSchema(title="Kindred", total_copies=4))
        assert (book.total_copies, book.available_copies) == (4, 4)
        assert book.language == "English"
        assert book.shelf_location == "A1"

    def test_create_with_missing_author(self, db):
        with pytest.raises(NotFoundError, match="Author 99"), db.session_scope() as session:
            BookRepository(session).create(BookCreateSchema(title="Orphan", author_id=99))

    def test_create_with_missing_publisher(self, db):
        with pytest.raises(NotFoundError, match="Publisher 99"), db.session_scope() as session:
            BookRepository(session).create(BookCreateSchema(title="Orphan", publisher_id=99))

    def test_list_books_newest_first_with_author_names(self, db, make_book):
        with db.session_scope() as session:
            author = AuthorRepository(session).create(LabelSchema(name="Octavia E. Butler"))
        make_book(title="Kindred", author_id=author.id)
        make_book(title="Dawn")

        with db.session_scope() as session:
            page = BookRepository(session).list_books(PaginationParams(page=1, page_size=10))

        assert page.total == 2
        assert [b.title for b in page.items] == ["Dawn", "Kindred"]
        assert [b.author_name for b in page.items] == [None, "Octavia E. Butler"]
        assert page.has_next is False

    def test_list_books_pages(self, db, make_book):
        for n in range(5):
            make_book(title=f"Volume {n}")
        with db.session_scope() as session:
            page = BookRepository(session).list_books(PaginationParams(page=2, page_size=2))
        assert [b.title for b in page.items] == ["Volume 2", "Volume 1"]
        assert (page.total_pages, page.has_next, page.has_previous) == (3, True, True)

    def test_update_descriptive_fields_only(self, db, sample_book):
        with db.session_scope() as session:
            book = BookRepository(session).update(
                sample_book.id, BookUpdateSchema(title="Renamed", shelf_location="B7")
            )
        assert (book.title, book.shelf_location) == ("Renamed", "B7")
        assert book.genre == "Science Fiction"
        assert (book.total_copies, book.available_copies) == (3, 3)

    def test_update_missing_book(self, db):
        with pytest.raises(NotFoundError), db.session_scope() as session:
            BookRepository(session).update(404, BookUpdateSchema(title="Ghost"))

    def test_delete_unlent_book(self, db, sample_book):
        with db.session_scope() as session:
            BookRepository(session).delete(sample_book.id)
        with db.session_scope() as session:
            assert BookRepository(session).get_by_id(sample_book.id) is None

    def test_delete_book_with_history(self, db, engine, sample_book, sample_member):
        borrowing = engine.issue(sample_member.id, sample_book.id)
        engine.return_book(borrowing.id)

        with pytest.raises(ConflictError), db.session_scope() as session:
            BookRepository(session).delete(sample_book.id)


class TestMemberRepository:
    def test_new_member_is_active(self, sample_member):
        assert sample_member.membership_status == MembershipStatus.ACTIVE
        assert sample_member.full_name == "Ada Lovelace"

    def test_duplicate_email_is_case_insensitive(self, make_member):
        make_member(email="ada@example.com")
        with pytest.raises(DuplicateError):
            make_member(email="ADA@example.com")

    def test_get_by_email(self, db, make_member):
        member = make_member(email="grace@example.com")
        with db.session_scope() as session:
            found = MemberRepository(session).get_by_email("Grace@Example.com")
        assert found.id == member.id

    def test_update_status_and_contact(self, db, sample_member):
        with db.session_scope() as session:
            member = MemberRepository(session).update(
                sample_member.id,
                MemberUpdateSchema(membership_status=MembershipStatus.SUSPENDED, phone="555-0100"),
            )
        assert member.membership_status == MembershipStatus.SUSPENDED
        assert member.phone == "555-0100"

    def test_update_to_taken_email(self, db, make_member):
        make_member(email="first@example.com")
        second = make_member(email="second@example.com")
        with pytest.raises(DuplicateError), db.session_scope() as session:
            MemberRepository(session).update(second.id, MemberUpdateSchema(email="first@example.com"))

    def test_keep_own_email(self, db, make_member):
        member = make_member(email="same@example.com")
        with db.session_scope() as session:
            updated = MemberRepository(session).update(
                member.id, MemberUpdateSchema(email="same@example.com", last_name="Byron")
            )
        assert updated.last_name == "Byron"

    def test_list_members_newest_first(self, db, make_member):
        first, second = make_member(), make_member()
        with db.session_scope() as session:
            page = MemberRepository(session).list_members()
        assert [m.id for m in page.items] == [second.id, first.id]

    def test_delete_member_without_history(self, db, sample_member):
        with db.session_scope() as session:
            MemberRepository(session).delete(sample_member.id)
            assert MemberRepository(session).get_by_id(sample_member.id) is None

    def test_delete_member_with_history(self, db, engine, sample_book, sample_member):
        engine.issue(sample_member.id, sample_book.id)
        with pytest.raises(ConflictError), db.session_scope() as session:
            MemberRepository(session).delete(sample_member.id)

    def test_delete_missing_member(self, db):
        with pytest.raises(NotFoundError), db.session_scope() as session:
            MemberRepository(session).delete(404)


class TestLabelRepositories:
    def test_create_and_rename_author(self, db):
        with db.session_scope() as session:
            repo = AuthorRepository(session)
            author = repo.create(LabelSchema(name="Ursula Le Guin"))
            renamed = repo.rename(author.id, "Ursula K. Le Guin")
        assert renamed.id == author.id
        assert renamed.name == "Ursula K. Le Guin"

    def test_rename_missing_label(self, db):
        with pytest.raises(NotFoundError), db.session_scope() as session:
            PublisherRepository(session).rename(404, "Nobody")

    def test_duplicate_genre(self, db):
        with db.session_scope() as session:
            GenreRepository(session).create(LabelSchema(name="Mystery"))
        with pytest.raises(DuplicateError), db.session_scope() as session:
            GenreRepository(session).create(LabelSchema(name="Mystery"))

    def test_genres_are_listed_by_name(self, db):
        with db.session_scope() as session:
            repo = GenreRepository(session)
            for name in ("Poetry", "Fantasy", "History"):
                repo.create(LabelSchema(name=name))
            assert [g.name for g in repo.list_labels()] == ["Fantasy", "History", "Poetry"]

    def test_authors_are_listed_newest_first(self, db):
        with db.session_scope() as session:
            repo = AuthorRepository(session)
            for name in ("First", "Second"):
                repo.create(LabelSchema(name=name))
            assert [a.name for a in repo.list_labels()] == ["Second", "First"]

    def test_referenced_publisher_cannot_be_deleted(self, db, make_book):
        with db.session_scope() as session:
            publisher = PublisherRepository(session).create(LabelSchema(name="Ace Books"))
        make_book(publisher_id=publisher.id)

        with pytest.raises(ConflictError, match="referenced by 1 book"), db.session_scope() as session:
            PublisherRepository(session).delete(publisher.id)

    def test_unreferenced_author_can_be_deleted(self, db):
        with db.session_scope() as session:
            author = AuthorRepository(session).create(LabelSchema(name="Anonymous"))
        with db.session_scope() as session:
            AuthorRepository(session).delete(author.id)
            assert AuthorRepository(session).get_by_id(author.id) is None

    @pytest.mark.parametrize(
        ("repository", "column"),
        [(AuthorRepository, "author_id"), (PublisherRepository, "publisher_id")],
    )
    def test_delete_checks_the_book_reference(self, db, make_book, repository, column):
        with db.session_scope() as session:
            used = repository(session).create(LabelSchema(name="In use"))
            unused = repository(session).create(LabelSchema(name="Unused"))
        make_book(**{column: used.id})

        with pytest.raises(ConflictError), db.session_scope() as session:
            repository(session).delete(used.id)
        with db.session_scope() as session:
            repository(session).delete(unused.id)
            assert [label.name for label in repository(session).list_labels()] == ["In use"]
