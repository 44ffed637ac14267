"""List controls and the view-model handed to the presentation layer."""
from dataclasses import dataclass, field
from typing import Generic, List, Sequence, TypeVar

from bibliotech.pipeline import (
    ASC,
    AUTHOR_SEARCH_FIELDS,
    AUTHOR_SORT_FIELDS,
    BOOK_SEARCH_FIELDS,
    BOOK_SORT_FIELDS,
    DESC,
    PAGE_SIZE,
    run_pipeline,
)

T = TypeVar("T")


@dataclass
class ListViewModel(Generic[T]):
    """Everything a list page needs to render one page."""
    visible_records: List[T]
    total_pages: int
    current_page: int
    sort_field: str
    sort_direction: str
    search_query: str
    total_records: int = 0
    is_loading: bool = False

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


@dataclass
class ListControls:
    """
    The four controls of one list page: search, sort field, sort direction
    and page.

    Controls only hold state; ``render`` runs the stateless pipeline over
    whatever snapshot it is given.
    """
    search_fields: Sequence[str]
    sort_fields: Sequence[str]
    sort_field: str
    sort_direction: str = ASC
    search_query: str = ""
    page: int = 1
    page_size: int = PAGE_SIZE
    _last_total_pages: int = field(default=0, repr=False)

    def __post_init__(self):
        if self.sort_field not in self.sort_fields:
            raise ValueError(f"Cannot sort by {self.sort_field}")
        if self.page_size < 1:
            raise ValueError(f"Page size must be at least 1, got {self.page_size}")

    def set_search_query(self, query: str):
        """Change the search text; a new query always goes back to page 1."""
        if query != self.search_query:
            self.search_query = query
            self.page = 1

    def toggle_sort(self, sort_field: str):
        """
        Sort by ``sort_field``.

        Choosing the current field flips the direction; choosing another
        field switches to it in ascending order.
        """
        if sort_field not in self.sort_fields:
            raise ValueError(f"Cannot sort by {sort_field}")

        if sort_field == self.sort_field:
            self.sort_direction = DESC if self.sort_direction == ASC else ASC
        else:
            self.sort_field = sort_field
            self.sort_direction = ASC

    def set_page(self, page: int):
        # Range checks belong to the caller; the pipeline tolerates any page
        self.page = page

    def next_page(self):
        if self.page < self._last_total_pages:
            self.page += 1

    def prev_page(self):
        if self.page > 1:
            self.page -= 1

    def render(self, records: Sequence[T], is_loading: bool = False) -> ListViewModel[T]:
        """Build the view-model for the given cache snapshot."""
        if is_loading:
            return ListViewModel(
                visible_records=[],
                total_pages=0,
                current_page=self.page,
                sort_field=self.sort_field,
                sort_direction=self.sort_direction,
                search_query=self.search_query,
                is_loading=True
            )

        result = run_pipeline(
            records,
            search_fields=self.search_fields,
            search_query=self.search_query,
            sort_field=self.sort_field,
            sort_direction=self.sort_direction,
            page=self.page,
            page_size=self.page_size,
            sort_fields=self.sort_fields
        )
        self._last_total_pages = result.total_pages

        return ListViewModel(
            visible_records=result.records,
            total_pages=result.total_pages,
            current_page=self.page,
            sort_field=self.sort_field,
            sort_direction=self.sort_direction,
            search_query=self.search_query,
            total_records=result.total_records
        )


def author_controls(page_size: int = PAGE_SIZE) -> ListControls:
    """Controls for the authors page, sorted by last name by default."""
    return ListControls(
        search_fields=AUTHOR_SEARCH_FIELDS,
        sort_fields=AUTHOR_SORT_FIELDS,
        sort_field="last_name",
        page_size=page_size
    )


def book_controls(page_size: int = PAGE_SIZE) -> ListControls:
    """Controls for the books page, sorted by title by default."""
    return ListControls(
        search_fields=BOOK_SEARCH_FIELDS,
        sort_fields=BOOK_SORT_FIELDS,
        sort_field="title",
        page_size=page_size
    )
