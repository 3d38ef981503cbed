from poolrelay import socketio


def sweep_once(app) -> dict:
    """One reclamation pass: drop empty rooms, then reap idle poll players."""
    relay = app.extensions['poolrelay']
    reaped = 0
    idle_timeout = int(app.config.get('POLL_IDLE_TIMEOUT_SEC', 0))
    if idle_timeout > 0:
        reaped = relay.coordinator.reap_idle(relay.queues, idle_timeout)
    removed = relay.registry.sweep_empty()
    if removed or reaped:
        app.logger.info(f"[sweep] removed={len(removed)} reaped={reaped} live={len(relay.registry)}")
    return {'removed': removed, 'reaped': reaped}


def start_sweeper(app) -> None:
    """Run ``sweep_once`` every SWEEP_INTERVAL_SEC on a Socket.IO background task.

    No-ops in TESTING mode.
    """
    if app.config.get('TESTING'):
        return
    interval = int(app.config.get('SWEEP_INTERVAL_SEC', 60))
    if interval <= 0:
        return

    def _worker():
        app.logger.info(f"[sweeper-start] interval={interval}s")
        while True:
            socketio.sleep(interval)
            try:
                with app.app_context():
                    sweep_once(app)
            except Exception:
                app.logger.exception('[sweeper-error]')

    socketio.start_background_task(_worker)
