import logging
from typing import Any, Callable, Optional, Union
from flask import Flask, current_app, render_template, request, session
from config import Config, configure_logging, get_config
from client import ApiError, BlogApiClient
from ui import BlogUI, InvalidTransition, View

logger = logging.getLogger(__name__)

SESSION_KEY : str = 'ui'


def get_api() -> BlogApiClient:
    return current_app.extensions['blog_api']


def _select(ui: BlogUI, move: Callable[[Any], None]) -> None:
    post_id : str = request.form.get('post_id', '')
    try:
        post = ui.find_post(post_id)
    except ApiError as error:
        ui.error = str(error)
        return
    move(post)


def _submit(ui: BlogUI) -> None:
    if ui.form is None:
        raise InvalidTransition(ui.view, 'submit')
    ui.form.title = request.form.get('title', '')
    ui.form.content = request.form.get('content', '')
    # The form is rebuilt on every request, so PostForm.submitting never outlives this call.
    # Double submits are stopped in the browser: form.html disables the button on submit.
    ui.submit()


ACTIONS : dict[str, Callable[[BlogUI], Any]] = {
    'new_post': lambda ui: ui.new_post(),
    'view_post': lambda ui: _select(ui, ui.view_post),
    'edit_post': lambda ui: _select(ui, ui.edit_post),
    'back': lambda ui: ui.back(),
    'cancel': lambda ui: ui.cancel(),
    'submit': _submit,
    'delete': lambda ui: ui.delete_post(request.form.get('post_id', ''), request.form.get('confirmed') == 'yes'),
    'retry': lambda ui: ui.load_posts(),
}


def render(ui: BlogUI) -> str:
    if ui.view is View.LIST and not ui.loaded:
        ui.load_posts()
    session[SESSION_KEY] = ui.snapshot()
    return render_template('index.html', ui=ui, View=View)


def index() -> str:
    # a full page load always starts over on the list
    session.pop(SESSION_KEY, None)
    return render(BlogUI(get_api()))


def dispatch() -> str:
    ui : BlogUI = BlogUI.restore(get_api(), session.get(SESSION_KEY))
    action : str = request.form.get('action', '')
    handler : Optional[Callable[[BlogUI], Any]] = ACTIONS.get(action)
    if handler is None:
        logger.warning('Unknown UI action %r', action)
    else:
        try:
            handler(ui)
        except InvalidTransition as error:
            logger.warning('Ignoring UI action: %s', error)
            ui = BlogUI(get_api())
    return render(ui)


def create_frontend(config_object: Union[type[Config], Config, None] = None, api: Optional[BlogApiClient] = None) -> Flask:
    app : Flask = Flask(__name__)
    app.config.from_object(config_object or get_config())
    configure_logging(app.config['LOG_LEVEL'])
    app.extensions['blog_api'] = api or BlogApiClient(app.config['API_BASE_URL'], timeout=app.config['API_TIMEOUT'])
    app.add_url_rule('/', 'index', index, methods=['GET'])
    app.add_url_rule('/', 'dispatch', dispatch, methods=['POST'])
    return app


if __name__ == '__main__':
    frontend : Flask = create_frontend()
    port : int = frontend.config['FRONTEND_PORT']
    print(f'Inkpost front end running on port {port}')
    frontend.run(host='0.0.0.0', port=port)
