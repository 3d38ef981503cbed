from poolrelay import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Socket.IO server carries both the push channel and the poll routes
    socketio.run(app, host=app.config['HOST'], port=app.config['PORT'],
                 allow_unsafe_werkzeug=app.config['ALLOW_UNSAFE_WERKZEUG'])
