from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.orm import Session

from blip.core.auth import require_cron_secret
from blip.core.clock import utcnow
from blip.core.db import get_db
from blip.services.monitor import live_stats
from blip.services.sweeper import run_sweep

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.post("/cleanup")
def cleanup(db: Session = Depends(get_db)):
    now = utcnow()
    logger.info("Cleanup sweep started")
    results = run_sweep(db, now=now)
    return {"success": True, "timestamp": now, "results": results}


@router.get("/stats")
def stats(db: Session = Depends(get_db)):
    return live_stats(db)
