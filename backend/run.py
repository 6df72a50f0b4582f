from mazehunt import create_app, socketio
from mazehunt.storage import wait_for_storage

app = create_app()

if __name__ == '__main__':
    # Keep retrying until the database is reachable instead of exiting
    wait_for_storage(app)
    socketio.run(app, debug=app.config.get('ENVIRONMENT') == 'development')
