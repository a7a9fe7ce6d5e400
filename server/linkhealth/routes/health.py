# server/linkhealth/routes/health.py

import logging
from typing import List, Optional

from flask import Blueprint, current_app, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from linkhealth.errors import (
    AlertNotFoundError,
    InvalidSettingsError,
    InvalidURLError,
    LinkNotFoundError,
    NotMonitoredError,
    PersistenceError,
)
from linkhealth.models.link import Link
from linkhealth.services.health_service import HealthService
from linkhealth.utils import responses

health_bp = Blueprint("health", __name__)
logger = logging.getLogger(__name__)


def health_service() -> HealthService:
    return current_app.extensions["link_health"]


def get_user_link(link_id: str, user_id: str) -> Optional[Link]:
    return Link.query.filter_by(id=link_id, user_id=user_id, is_deleted=False).first()


def get_user_link_ids(user_id: str) -> List[str]:
    rows = Link.query.with_entities(Link.id).filter_by(user_id=user_id, is_deleted=False).all()
    return [row.id for row in rows]


@health_bp.errorhandler(NotMonitoredError)
def handle_not_monitored(e: NotMonitoredError):
    return responses.error(str(e), 404, "NOT_MONITORED")


@health_bp.errorhandler(AlertNotFoundError)
def handle_alert_not_found(e: AlertNotFoundError):
    return responses.error("Alert not found", 404, "NOT_FOUND")


@health_bp.errorhandler(LinkNotFoundError)
def handle_link_not_found(e: LinkNotFoundError):
    return responses.error("Link not found", 404, "NOT_FOUND")


@health_bp.errorhandler(InvalidSettingsError)
@health_bp.errorhandler(InvalidURLError)
def handle_validation_error(e: ValueError):
    return responses.error(str(e), 400, "VALIDATION_ERROR")


@health_bp.errorhandler(PersistenceError)
def handle_persistence_error(e: PersistenceError):
    logger.error(f"Health record persistence failed: {e}")
    return responses.error("Could not save health data, please retry", 503, "UNAVAILABLE")


@health_bp.route("/links/<link_id>/enable", methods=["POST"])
@jwt_required()
def enable_monitoring(link_id: str):
    user_id = get_jwt_identity()

    link = get_user_link(link_id, user_id)
    if not link:
        return responses.error("Link not found", 404, "NOT_FOUND")

    data = request.get_json(silent=True) or {}

    record = health_service().enable_monitoring(
        link.id,
        destination_url=link.original_url,
        settings=data,
        run_initial_check=True,
    )

    return responses.success(data={"link_health": record.to_dict()}, message="Health monitoring enabled")


@health_bp.route("/links/<link_id>/disable", methods=["POST"])
@jwt_required()
def disable_monitoring(link_id: str):
    user_id = get_jwt_identity()

    if not get_user_link(link_id, user_id):
        return responses.error("Link not found", 404, "NOT_FOUND")

    health_service().disable_monitoring(link_id)
    return responses.success(message="Health monitoring disabled")


@health_bp.route("/links/<link_id>/status", methods=["GET"])
@jwt_required()
def get_status(link_id: str):
    user_id = get_jwt_identity()

    if not get_user_link(link_id, user_id):
        return responses.error("Link not found", 404, "NOT_FOUND")

    return responses.success(data=health_service().get_status(link_id))


@health_bp.route("/links/<link_id>/check", methods=["POST"])
@jwt_required()
def trigger_check(link_id: str):
    user_id = get_jwt_identity()

    if not get_user_link(link_id, user_id):
        return responses.error("Link not found", 404, "NOT_FOUND")

    service = health_service()
    result = service.trigger_check(link_id)
    record = service.get_record(link_id)

    logger.info(f"Manual health check for link {link_id}: {'healthy' if result.is_healthy else 'broken'}")

    return responses.success(data={
        "result": result.to_dict(),
        "current_status": record.current_status_dict(),
    }, message="Health check completed")


@health_bp.route("/monitored", methods=["GET"])
@jwt_required()
def list_monitored():
    user_id = get_jwt_identity()
    status = request.args.get("status", "all")

    try:
        records = health_service().list_monitored(get_user_link_ids(user_id), status)
    except ValueError as e:
        return responses.error(str(e), 400, "VALIDATION_ERROR")

    return responses.success(data={
        "monitored_links": [record.to_dict() for record in records],
        "total": len(records),
    })


@health_bp.route("/summary", methods=["GET"])
@jwt_required()
def get_summary():
    user_id = get_jwt_identity()
    return responses.success(data=health_service().get_health_summary(get_user_link_ids(user_id)))


@health_bp.route("/alerts", methods=["GET"])
@jwt_required()
def get_alerts():
    user_id = get_jwt_identity()

    acknowledged = request.args.get("acknowledged")
    if acknowledged == "true":
        acknowledged = True
    elif acknowledged == "false":
        acknowledged = False
    else:
        acknowledged = None

    alerts = health_service().get_alerts(get_user_link_ids(user_id), acknowledged=acknowledged)

    return responses.success(data={
        "alerts": alerts,
        "total": len(alerts),
        "unacknowledged": sum(1 for a in alerts if not a["acknowledged"]),
    })


@health_bp.route("/links/<link_id>/alerts/<alert_id>/acknowledge", methods=["POST"])
@jwt_required()
def acknowledge_alert(link_id: str, alert_id: str):
    user_id = get_jwt_identity()

    if not get_user_link(link_id, user_id):
        return responses.error("Link not found", 404, "NOT_FOUND")

    alert = health_service().acknowledge_alert(link_id, alert_id)
    return responses.success(data={"alert": alert.to_dict()}, message="Alert acknowledged")
