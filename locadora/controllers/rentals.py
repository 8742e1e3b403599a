import json

from flask import Blueprint, current_app, g, jsonify, request

from ..services.rental_service import RentalService
from ..services.responses import http_status
from ..utils.decorators import json_body, required_fields, valid_path_id

bp = Blueprint("rentals", __name__, url_prefix="/rentals")

CREATE_REQUIRED = (
    ("clientId", "client_id", "cpfLocatario"),
    ("plate", "placaVeiculo"),
    ("startDate", "start_date", "dataInicio"),
    ("endDate", "end_date", "dataFim"),
    ("amount", "valor"),
)


def _service() -> RentalService:
    return RentalService(
        store=current_app.extensions["locadora.store"],
        expose_details=current_app.config["EXPOSE_ERROR_DETAILS"],
    )


def _reply(result: dict, ok_status: int = 200, message: str | None = None):
    if result.get("success") and message:
        result = {**result, "message": message}
    return jsonify(result), http_status(result, ok_status)


@bp.post("")
@json_body
@required_fields(*CREATE_REQUIRED)
def create_rental():
    """Create a rental; the vehicle becomes rented in the same commit."""
    result = _service().create_rental(g.body)
    return _reply(result, 201, "Rental created")


@bp.get("")
def list_rentals():
    """List rentals newest first. Query: limit, cursor, filters (JSON object)."""
    raw_filters = request.args.get("filters")
    filters = None
    if raw_filters:
        try:
            filters = json.loads(raw_filters)
        except ValueError:
            return jsonify({
                "success": False,
                "error": "filters must be valid JSON",
                "field": "filters",
                "code": "VALIDATION_ERROR",
            }), 400
    result = _service().list_rentals(
        limit=request.args.get("limit"),
        cursor=request.args.get("cursor") or None,
        filters=filters,
    )
    return _reply(result)


@bp.get("/client/<tax_id>")
@valid_path_id("tax_id")
def client_history(tax_id):
    return _reply(_service().client_history(tax_id))


@bp.get("/vehicle/<plate>")
@valid_path_id("plate")
def vehicle_history(plate):
    return _reply(_service().vehicle_history(plate))


@bp.get("/<rental_id>")
@valid_path_id("rental_id")
def get_rental(rental_id):
    return _reply(_service().get_rental(rental_id))


@bp.put("/<rental_id>")
@valid_path_id("rental_id")
@json_body
def update_rental(rental_id):
    if not g.body:
        return jsonify({
            "success": False,
            "error": "No data provided for update",
            "code": "VALIDATION_ERROR",
        }), 400
    result = _service().update_rental(rental_id, g.body)
    return _reply(result, message=f"Rental {rental_id} updated")


@bp.patch("/<rental_id>/status")
@valid_path_id("rental_id")
@json_body
@required_fields("status")
def update_status(rental_id):
    """Change only the status; terminal statuses release the vehicle."""
    status = g.body["status"]
    result = _service().update_rental(rental_id, {"status": status})
    return _reply(result, message=f"Rental {rental_id} status changed to {status}")


@bp.delete("/<rental_id>")
@valid_path_id("rental_id")
def delete_rental(rental_id):
    result = _service().delete_rental(rental_id)
    return _reply(result, message=f"Rental {rental_id} deleted")
