'''Typed httpx client for the blog API. One request per call, no retries.'''
import logging
from typing import Any, Optional, Union
import httpx
from config import Config
from schemas import CreatePost, Post, UpdatePost

logger = logging.getLogger(__name__)

POSTS_PATH : str = '/api/posts'


class ApiError(Exception):
    '''A failed API call, carrying the server's error string when there was one.'''

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message : str = message
        self.status_code : Optional[int] = status_code


class BlogApiClient:
    '''Pass ``http`` to reuse or fake the transport, e.g. an ``httpx.Client`` over ``httpx.WSGITransport``.'''

    def __init__(self, base_url: Optional[str] = None, http: Optional[httpx.Client] = None, timeout: Optional[float] = None):
        self.base_url : str = (base_url or Config.API_BASE_URL).rstrip('/')
        self._owns_http : bool = http is None
        self.http : httpx.Client = http or httpx.Client(timeout=timeout or Config.API_TIMEOUT)
        logger.debug('BlogApiClient initialized (base_url: %s)', self.base_url)

    def __enter__(self) -> 'BlogApiClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def _request(self, method: str, path: str, fallback: str, json: Optional[dict] = None) -> dict:
        '''Return the decoded envelope, or raise ``ApiError`` with the server's error or ``fallback``.'''
        url : str = f'{self.base_url}{path}'
        try:
            response : httpx.Response = self.http.request(method, url, json=json)
        except httpx.HTTPError as e:
            logger.warning('%s %s failed: %s', method, url, e)
            raise ApiError(fallback) from e

        envelope : Any
        try:
            envelope = response.json()
        except ValueError:
            envelope = None

        if not isinstance(envelope, dict):
            logger.warning('%s %s returned a non-envelope body (%s)', method, url, response.status_code)
            raise ApiError(fallback, response.status_code)

        if response.is_error or not envelope.get('success'):
            message : str = envelope.get('error') or fallback
            logger.warning('%s %s -> %s: %s', method, url, response.status_code, message)
            raise ApiError(message, response.status_code)

        return envelope

    @staticmethod
    def _data(envelope: dict, fallback: str) -> Any:
        data : Any = envelope.get('data')
        if data is None:
            raise ApiError(envelope.get('error') or fallback)
        return data

    @staticmethod
    def _payload(payload: Union[CreatePost, UpdatePost, dict]) -> dict:
        if isinstance(payload, UpdatePost):
            return payload.changes()
        if isinstance(payload, CreatePost):
            return payload.model_dump()
        return dict(payload)

    def get_all_posts(self) -> list[Post]:
        envelope : dict = self._request('GET', POSTS_PATH, 'Failed to fetch posts')
        return [Post.model_validate(item) for item in envelope.get('data') or []]

    def get_post(self, post_id: str) -> Post:
        envelope : dict = self._request('GET', f'{POSTS_PATH}/{post_id}', 'Post not found')
        return Post.model_validate(self._data(envelope, 'Post not found'))

    def create_post(self, payload: Union[CreatePost, dict]) -> Post:
        envelope : dict = self._request('POST', POSTS_PATH, 'Failed to create post', json=self._payload(payload))
        return Post.model_validate(self._data(envelope, 'Failed to create post'))

    def update_post(self, post_id: str, payload: Union[UpdatePost, dict]) -> Post:
        envelope : dict = self._request('PUT', f'{POSTS_PATH}/{post_id}', 'Failed to update post', json=self._payload(payload))
        return Post.model_validate(self._data(envelope, 'Failed to update post'))

    def delete_post(self, post_id: str) -> None:
        self._request('DELETE', f'{POSTS_PATH}/{post_id}', 'Failed to delete post')
