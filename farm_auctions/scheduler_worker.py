import logging

from apscheduler.schedulers.background import BackgroundScheduler

from farm_auctions.lifecycle import close_expired_auctions

logger = logging.getLogger(__name__)


def run_sweep(app):
    with app.app_context():
        closed = close_expired_auctions(app.extensions['auction_store'])
        logger.info(f"{len(closed)} auctions closed by sweep")
        return closed


def start_scheduler(app, minutes=None):
    minutes = minutes or app.config['AUCTION_SWEEP_MINUTES']
    scheduler = BackgroundScheduler()
    scheduler.add_job(func=run_sweep, args=[app], trigger="interval", minutes=minutes,
                      id="close_expired_auctions", replace_existing=True)
    scheduler.start()
    logger.info(f"Scheduler started, sweeping every {minutes} minutes")
    return scheduler


if __name__ == "__main__":
    import time

    from farm_auctions import create_app

    # Standalone sweeping only reaches shared state with STORAGE_BACKEND=sql
    app = create_app(start_background_jobs=False)
    scheduler = start_scheduler(app, minutes=app.config["AUCTION_SWEEP_MINUTES"] or 1)

    # Keep the script running
    try:
        while True:
            time.sleep(1)
    except (KeyboardInterrupt, SystemExit):
        scheduler.shutdown()
