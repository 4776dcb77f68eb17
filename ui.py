'''Front end state: which of the four screens is showing and what it holds.

``BlogUI`` starts on the list, moves between ``list``, ``create``, ``edit`` and
``view`` through its action methods, and talks to the API only through the
client it was given. Nothing here survives a reload; ``snapshot``/``restore``
only carry state between two actions of the same page session.
'''
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union
from client import ApiError, BlogApiClient
from schemas import CreatePost, Post, PayloadValidationError, UpdatePost, validate

logger = logging.getLogger(__name__)


class View(str, Enum):
    LIST = 'list'
    CREATE = 'create'
    EDIT = 'edit'
    VIEW = 'view'


TRANSITIONS : dict[tuple[View, str], View] = {
    (View.LIST, 'new_post'): View.CREATE,
    (View.LIST, 'edit_post'): View.EDIT,
    (View.LIST, 'view_post'): View.VIEW,
    (View.CREATE, 'saved'): View.LIST,
    (View.CREATE, 'cancel'): View.LIST,
    (View.EDIT, 'saved'): View.LIST,
    (View.EDIT, 'cancel'): View.LIST,
    (View.VIEW, 'back'): View.LIST,
    (View.VIEW, 'edit_post'): View.EDIT,
}


class InvalidTransition(RuntimeError):
    def __init__(self, view: View, action: str):
        super().__init__(f'cannot {action} from the {view.value} view')
        self.view : View = view
        self.action : str = action


@dataclass
class PostForm:
    title: str = ''
    content: str = ''
    original: Optional[Post] = None
    field_errors: dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    submitting: bool = False  # set only while a save call is running on this object

    @property
    def is_editing(self) -> bool:
        return self.original is not None

    @classmethod
    def for_post(cls, post: Optional[Post]) -> 'PostForm':
        if post is None:
            return cls()
        return cls(title=post.title, content=post.content, original=post)

    def payload(self) -> Union[CreatePost, UpdatePost]:
        '''Validate the form the way the API will, raising PayloadValidationError.'''
        if self.original is None:
            return validate(CreatePost, {'title': self.title, 'content': self.content})
        changes : dict[str, str] = {}
        if self.title != self.original.title:
            changes['title'] = self.title
        if self.content != self.original.content:
            changes['content'] = self.content
        return validate(UpdatePost, changes)


class BlogUI:

    def __init__(self, api: BlogApiClient):
        self.api : BlogApiClient = api
        self.view : View = View.LIST
        self.selected : Optional[Post] = None
        self.form : Optional[PostForm] = None
        self.posts : list[Post] = []
        self.list_error : Optional[str] = None
        self.error : Optional[str] = None
        self.loaded : bool = False

    def _move(self, action: str) -> View:
        try:
            self.view = TRANSITIONS[(self.view, action)]
        except KeyError:
            raise InvalidTransition(self.view, action) from None
        return self.view

    def _back_to_list(self, action: str) -> None:
        self._move(action)
        self.selected = None
        self.form = None
        self.loaded = False

    def load_posts(self) -> bool:
        '''(Re)load the list; on failure ``list_error`` holds the message to show next to Retry.'''
        self.list_error = None
        try:
            self.posts = self.api.get_all_posts()
        except ApiError as error:
            logger.warning('Loading posts failed: %s', error)
            self.list_error = str(error) or 'Failed to load posts'
            return False
        finally:
            self.loaded = True
        return True

    def new_post(self) -> None:
        self._move('new_post')
        self.selected = None
        self.form = PostForm.for_post(None)

    def edit_post(self, post: Post) -> None:
        self._move('edit_post')
        self.selected = post
        self.form = PostForm.for_post(post)

    def view_post(self, post: Post) -> None:
        self._move('view_post')
        self.selected = post
        self.form = None

    def back(self) -> None:
        self._back_to_list('back')

    def cancel(self) -> None:
        self._back_to_list('cancel')

    def submit(self) -> Optional[Post]:
        '''Validate and save the form. Returns the saved post, or None if nothing was saved.'''
        form : Optional[PostForm] = self.form
        if form is None or self.view not in (View.CREATE, View.EDIT):
            raise InvalidTransition(self.view, 'submit')
        if form.submitting:
            return None

        try:
            payload : Union[CreatePost, UpdatePost] = form.payload()
        except PayloadValidationError as error:
            form.field_errors = {key: value for key, value in error.fields.items() if key in ('title', 'content')}
            return None
        form.field_errors = {}
        form.error = None

        form.submitting = True
        try:
            if form.original is not None:
                saved : Post = self.api.update_post(str(form.original.id), payload)
            else:
                saved = self.api.create_post(payload)
        except ApiError as error:
            form.error = str(error) or 'Failed to save post'
            return None
        finally:
            form.submitting = False

        self._back_to_list('saved')
        return saved

    def delete_post(self, post_id: str, confirmed: bool = False) -> bool:
        if self.view is not View.LIST:
            raise InvalidTransition(self.view, 'delete')
        if not confirmed:
            return False
        try:
            self.api.delete_post(post_id)
        except ApiError as error:
            self.error = str(error) or 'Failed to delete post'
            return False
        self.posts = [post for post in self.posts if str(post.id) != str(post_id)]
        return True

    def find_post(self, post_id: str) -> Post:
        for post in self.posts:
            if str(post.id) == str(post_id):
                return post
        return self.api.get_post(post_id)

    def snapshot(self) -> dict[str, Any]:
        '''Just enough to rebuild the screen on the next action; form fields travel with the form itself.'''
        return {
            'view': self.view.value,
            'selected_id': str(self.selected.id) if self.selected else None,
        }

    @classmethod
    def restore(cls, api: BlogApiClient, state: Optional[dict[str, Any]]) -> 'BlogUI':
        ui : BlogUI = cls(api)
        if not state:
            return ui
        try:
            view : View = View(state.get('view', View.LIST.value))
        except ValueError:
            logger.warning('Discarding unreadable UI state %r', state)
            return ui
        selected_id : Optional[str] = state.get('selected_id')
        if view in (View.EDIT, View.VIEW):
            if not selected_id:
                return ui
            try:
                ui.selected = api.get_post(selected_id)
            except ApiError as error:
                ui.error = str(error)
                return ui
        ui.view = view
        if view is View.CREATE:
            ui.form = PostForm.for_post(None)
        elif view is View.EDIT:
            ui.form = PostForm.for_post(ui.selected)
        return ui
