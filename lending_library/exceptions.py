class LibraryError(Exception):
    """Base exception for lending library errors."""


class InvalidEmailError(LibraryError):
    """Member email does not match the accepted email syntax."""


class DuplicateBookError(LibraryError):
    """A book with the same ISBN is already in the catalog."""


class DuplicateMemberError(LibraryError):
    """A member with the same id or email is already registered."""


class LendingError(LibraryError):
    """Checkout or return rejected; catalog state is left untouched."""


class MemberNotFoundError(LendingError):
    """No member matches the given email."""


class BookNotFoundError(LendingError):
    """No book matches the given ISBN."""


class BookUnavailableError(LendingError):
    """Book is already checked out."""


class BookNotBorrowedError(LendingError):
    """Book is not in the member's borrowed set."""


class PersistenceError(LibraryError):
    """Reading or writing the catalog snapshot failed."""
