import logging
from typing import Optional, Union
from flask import Blueprint, Flask, Response, current_app, request
from werkzeug.exceptions import HTTPException
from config import Config, configure_logging, get_config
from envelope import DataResult, ErrorResult, MessageResult, respond
from models import db
from schemas import CreatePost, Post, PayloadValidationError, UpdatePost, validate
from storage import PostStore, SqlPostStore, build_store

logger = logging.getLogger(__name__)

API_PREFIX : str = '/api/posts'
NOT_FOUND : str = 'Post not found'
CORS_METHODS : str = 'GET, POST, PUT, DELETE, OPTIONS'
CORS_HEADERS : str = 'Content-Type, Authorization'

posts_api : Blueprint = Blueprint('posts', __name__)


def get_store() -> PostStore:
    return current_app.extensions['post_store']


def invalid(error: PayloadValidationError) -> tuple[Response, int]:
    return respond(ErrorResult('Validation failed', 400, [issue.to_dict() for issue in error.issues]))


@posts_api.get('')
def list_posts() -> tuple[Response, int]:
    posts : list[Post] = get_store().list_all()
    return respond(DataResult([post.to_json() for post in posts]))


@posts_api.get('/<post_id>')
def get_post(post_id: str) -> tuple[Response, int]:
    post : Optional[Post] = get_store().get_by_id(post_id)
    if post is None:
        logger.debug('Post %s not found', post_id)
        return respond(ErrorResult(NOT_FOUND, 404))
    return respond(DataResult(post.to_json()))


@posts_api.post('')
def create_post() -> tuple[Response, int]:
    try:
        payload : CreatePost = validate(CreatePost, request.get_json(silent=True))
    except PayloadValidationError as error:
        return invalid(error)
    post : Post = get_store().create(payload)
    logger.info('Created post %s', post.id)
    return respond(DataResult(post.to_json(), 'Post created successfully', 201))


@posts_api.put('/<post_id>')
def update_post(post_id: str) -> tuple[Response, int]:
    try:
        payload : UpdatePost = validate(UpdatePost, request.get_json(silent=True))
    except PayloadValidationError as error:
        return invalid(error)
    post : Optional[Post] = get_store().update(post_id, payload)
    if post is None:
        logger.debug('Post %s not found for update', post_id)
        return respond(ErrorResult(NOT_FOUND, 404))
    logger.info('Updated post %s (%s)', post.id, ', '.join(payload.changes()) or 'no fields')
    return respond(DataResult(post.to_json(), 'Post updated successfully'))


@posts_api.delete('/<post_id>')
def delete_post(post_id: str) -> tuple[Response, int]:
    if not get_store().delete(post_id):
        logger.debug('Post %s not found for delete', post_id)
        return respond(ErrorResult(NOT_FOUND, 404))
    logger.info('Deleted post %s', post_id)
    return respond(MessageResult('Post deleted successfully'))


def index() -> tuple[Response, int]:
    return respond(DataResult({'endpoints': {'posts': API_PREFIX}}, 'Blog API is running!'))


def handle_http_error(error: HTTPException) -> tuple[Response, int]:
    messages : dict[int, str] = {404: 'Not found', 405: 'Method not allowed'}
    code : int = error.code or 500
    return respond(ErrorResult(messages.get(code, error.name), code))


def handle_unexpected_error(error: Exception) -> tuple[Response, int]:
    logger.exception('Unhandled error on %s %s', request.method, request.path)
    return respond(ErrorResult('Internal server error', 500))


def preflight() -> Optional[Response]:
    '''Answer CORS preflights for known routes from allowed origins; anything else routes normally.'''
    if request.method != 'OPTIONS' or not request.headers.get('Access-Control-Request-Method'):
        return None
    if request.routing_exception is not None:
        return None
    if request.headers.get('Origin') not in current_app.config['CORS_ORIGINS']:
        return None
    return Response(status=204)


def apply_cors(response: Response) -> Response:
    origin : Optional[str] = request.headers.get('Origin')
    if origin and origin in current_app.config['CORS_ORIGINS']:
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Access-Control-Allow-Credentials'] = 'true'
        response.headers['Access-Control-Allow-Methods'] = CORS_METHODS
        response.headers['Access-Control-Allow-Headers'] = CORS_HEADERS
        response.vary.add('Origin')
    return response


def seed_command() -> None:
    '''Replace every post with the sample posts.'''
    store : PostStore = get_store()
    store.clear()
    created : list[Post] = store.seed()
    print(f'Created {len(created)} posts')


def create_app(config_object: Union[type[Config], Config, None] = None, store: Optional[PostStore] = None) -> Flask:
    app : Flask = Flask(__name__)
    app.config.from_object(config_object or get_config())
    configure_logging(app.config['LOG_LEVEL'])

    db.init_app(app)
    if store is None:
        store = build_store(app.config['STORAGE_BACKEND'], db, seed_samples=not app.config['TESTING'])
    if isinstance(store, SqlPostStore):
        with app.app_context():
            db.create_all()
    app.extensions['post_store'] = store

    app.add_url_rule('/', 'index', index)
    app.register_blueprint(posts_api, url_prefix=API_PREFIX)
    app.register_error_handler(HTTPException, handle_http_error)
    app.register_error_handler(Exception, handle_unexpected_error)
    app.before_request(preflight)
    app.after_request(apply_cors)
    app.cli.command('seed')(seed_command)

    logger.info('API configured with %s storage', type(store).__name__)
    return app


if __name__ == '__main__':
    api : Flask = create_app()
    port : int = api.config['PORT']
    print(f'Inkpost API running on port {port}')
    api.run(host='0.0.0.0', port=port)
