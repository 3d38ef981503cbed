from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    origins = flask_app.config.get('CORS_ORIGINS', '*')
    namespace = flask_app.config.get('PUSH_NAMESPACE', '/ws')
    CORS(flask_app, origins=origins, send_wildcard=(origins == '*'))

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # One registry and queue store per app instance, shared by both transports
    from poolrelay.delivery import PendingQueues, QueueDelivery, SocketDelivery
    from poolrelay.registry import RoomRegistry
    from poolrelay.services.session import Relay, RoomCoordinator
    registry = RoomRegistry()
    queues = PendingQueues(max_depth=int(flask_app.config.get('POLL_QUEUE_MAX', 0)))
    flask_app.extensions['poolrelay'] = Relay(
        registry=registry,
        queues=queues,
        coordinator=RoomCoordinator(registry, enforce_turn_order=flask_app.config.get('ENFORCE_TURN_ORDER', True)),
        push=SocketDelivery(socketio, namespace=namespace),
        poll=QueueDelivery(queues),
    )

    # Import and register blueprints here
    from poolrelay.main import main
    flask_app.register_blueprint(main)

    from poolrelay.api.poll import poll
    flask_app.register_blueprint(poll)

    # Register Socket.IO event handlers for the push transport
    from poolrelay.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=namespace)

    @click.command('serve')
    @click.option('--host', default=None, help='Interface to bind (default: HOST config).')
    @click.option('--port', default=None, type=int, help='Port to listen on (default: PORT config).')
    def serve_command(host, port):
        """Serve both transports until interrupted."""
        host = host or flask_app.config.get('HOST', '0.0.0.0')
        port = port or int(flask_app.config.get('PORT', 3000))
        click.echo(f'8 Ball Pool relay running on {host}:{port}')
        socketio.run(flask_app, host=host, port=port,
                     allow_unsafe_werkzeug=flask_app.config.get('ALLOW_UNSAFE_WERKZEUG', False))

    flask_app.cli.add_command(serve_command)

    from poolrelay.services.session.sweeper import start_sweeper
    start_sweeper(flask_app)

    return flask_app
