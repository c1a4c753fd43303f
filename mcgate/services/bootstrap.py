"""Application bootstrap/run helpers."""


def run_server(app, cfg_get_str, cfg_get_int, log_mcgate_log, log_mcgate_exception, boot_steps):
    """Run startup steps, then start Flask server."""
    host = cfg_get_str("WEB_HOST", "127.0.0.1")
    port = cfg_get_int("WEB_PORT", 8080, minimum=1)
    log_mcgate_log("boot-start", command=f"host={host} port={port}")

    for step_name, step_func in boot_steps:
        try:
            step_func()
        except Exception as exc:
            log_mcgate_exception(f"boot_step/{step_name}", exc)
            log_mcgate_log("boot-failed", command=step_name, rejection_message=str(exc)[:500] or "startup step failed")
            raise

    log_mcgate_log("boot-ready", command=f"host={host} port={port}")
    try:
        app.run(host=host, port=port, threaded=True)
    except Exception as exc:
        log_mcgate_exception("boot_step/app.run", exc)
        log_mcgate_log("boot-failed", command="app.run", rejection_message=str(exc)[:500] or "web server startup failed")
        raise


def seed_admin_user(store, cfg_get_str, log_mcgate_log):
    """Create or refresh the bootstrap admin from ADMIN_USER_ID/ADMIN_API_TOKEN."""
    user_id = cfg_get_str("ADMIN_USER_ID", "")
    token = cfg_get_str("ADMIN_API_TOKEN", "")
    if not user_id or not token:
        log_mcgate_log("seed-admin", rejection_message="ADMIN_USER_ID/ADMIN_API_TOKEN not set")
        return False
    store.upsert_user(user_id, role="admin", api_token=token)
    log_mcgate_log("seed-admin", command=user_id)
    return True
