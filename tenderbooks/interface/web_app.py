"""Mini README: FastAPI-powered bookkeeping API for tenderbooks.

Structure:
    * create_application - application factory wiring routes to a LedgerService.

Routes return JSON for the presentation layer: person and vendor ledgers
with implied MFS charges, actions that give advances, record expenses and
write implied charges back, the tender balance register, and the MFS fee
calculator. Domain errors are translated to HTTP status codes here and
nowhere else: invalid input -> 400, unknown ids -> 404, storage failures ->
503.
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.responses import JSONResponse

from ..configuration import get_settings
from ..finance.exceptions import InvalidAmount, PersistenceFailure
from ..finance.service import LedgerService, PersonLedgerView
from ..logging_utils import configure_root_logger, get_logger
from ..storage import DEMO_TENDER_ID, REGISTRY

LOGGER = get_logger(__name__)


def create_application(service: Optional[LedgerService] = None) -> FastAPI:
    """Create the FastAPI application with routes and dependencies."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    app = FastAPI(title="Tenderbooks", version="0.1.0")
    ledger_service = service or LedgerService.from_settings(settings)

    @app.exception_handler(InvalidAmount)
    async def invalid_amount(_: Request, error: InvalidAmount) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(error)})

    @app.exception_handler(PersistenceFailure)
    async def persistence_failure(_: Request, error: PersistenceFailure) -> JSONResponse:
        LOGGER.error("Storage failure: %s", error)
        return JSONResponse(status_code=503, content={"detail": str(error)})

    def load_person(tender_id: str, person_id: str) -> PersonLedgerView:
        scope = ledger_service.resolve_scope(person_id)
        return ledger_service.load_person_ledger(tender_id, scope)

    @app.get("/")
    async def overview() -> JSONResponse:
        """Describe the running service and where to start."""

        return JSONResponse(
            {
                "service": "tenderbooks",
                "storage_backend": ledger_service.repository.backend_name,
                "available_backends": list(REGISTRY.available_backends()),
                "mfs_tariff": ledger_service.tariff.describe(),
                "demo_tender": DEMO_TENDER_ID,
                "messages": [
                    f"Open /tenders/{DEMO_TENDER_ID}/balances for the advances register.",
                    "Use /mfs/charge?amount=1000 to preview a transfer fee.",
                ],
            }
        )

    @app.get("/mfs/charge")
    async def mfs_charge(amount: str, payment_method: str = "mfs") -> JSONResponse:
        """Preview the MFS fee and total outlay for a transfer."""

        try:
            breakdown = ledger_service.charge_breakdown(amount, payment_method)
        except InvalidAmount:
            raise
        except ValueError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        return JSONResponse({"payment_method": payment_method, **breakdown.as_dict()})

    @app.get("/tenders/{tender_id}/people/{person_id}/ledger")
    async def person_ledger(tender_id: str, person_id: str) -> JSONResponse:
        """Return the newest-first ledger, totals and implied charges."""

        view = load_person(tender_id, person_id)
        LOGGER.debug("Returning %s ledger lines for %s", len(view.ledger.transactions), person_id)
        return JSONResponse(view.as_dict())

    @app.post("/tenders/{tender_id}/people/{person_id}/advances")
    async def give_advance(
        tender_id: str,
        person_id: str,
        advance_date: str = Form(...),
        amount: str = Form(...),
        payment_method: str = Form("cash"),
        payment_reference: Optional[str] = Form(None),
        purpose: Optional[str] = Form(None),
        notes: Optional[str] = Form(None),
    ) -> JSONResponse:
        """Record an advance and return the updated ledger."""

        scope = ledger_service.resolve_scope(person_id)
        try:
            record = ledger_service.give_advance(
                tender_id,
                scope,
                advance_date=advance_date,
                amount=amount,
                payment_method=payment_method,
                payment_reference=payment_reference,
                purpose=purpose,
                notes=notes,
            )
        except InvalidAmount:
            raise
        except ValueError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        view = ledger_service.load_person_ledger(tender_id, scope)
        return JSONResponse({"advance_id": record.record_id, **view.as_dict()}, status_code=201)

    @app.post("/tenders/{tender_id}/people/{person_id}/expenses")
    async def record_expense(
        tender_id: str,
        person_id: str,
        expense_date: str = Form(...),
        amount: str = Form(...),
        description: str = Form(...),
        notes: Optional[str] = Form(None),
    ) -> JSONResponse:
        """Record an expense reported by the person and return the updated ledger."""

        scope = ledger_service.resolve_scope(person_id)
        try:
            record = ledger_service.record_expense(
                tender_id,
                scope,
                expense_date=expense_date,
                amount=amount,
                description=description,
                notes=notes,
            )
        except InvalidAmount:
            raise
        except ValueError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        view = ledger_service.load_person_ledger(tender_id, scope)
        return JSONResponse({"expense_id": record.record_id, **view.as_dict()}, status_code=201)

    @app.post("/tenders/{tender_id}/people/{person_id}/implied-charges/{charge_id}/promote")
    async def promote_charge(tender_id: str, person_id: str, charge_id: str) -> JSONResponse:
        """Write one implied MFS charge back as a real record."""

        view = load_person(tender_id, person_id)
        charge = next((item for item in view.implied_charges if item.record_id == charge_id), None)
        if charge is None:
            raise HTTPException(status_code=404, detail=f"Implied charge {charge_id} not found")
        record = ledger_service.promote_implied_charge(charge)
        return JSONResponse({"charge_id": charge_id, "record_id": record.record_id}, status_code=201)

    @app.post("/tenders/{tender_id}/people/{person_id}/implied-charges/promote-all")
    async def promote_person_charges(tender_id: str, person_id: str) -> JSONResponse:
        """Write every implied charge on the person's ledger back in one batch."""

        view = load_person(tender_id, person_id)
        result = ledger_service.promote_all_implied(view.implied_charges)
        return JSONResponse(result.as_dict(), status_code=207 if result.failed else 200)

    @app.get("/tenders/{tender_id}/vendors/{vendor_id}/ledger")
    async def vendor_ledger(tender_id: str, vendor_id: str) -> JSONResponse:
        """Return purchases, payments and the amount still due to a vendor."""

        try:
            view = ledger_service.load_vendor_ledger(tender_id, vendor_id)
        except KeyError as error:
            raise HTTPException(status_code=404, detail=str(error)) from error
        return JSONResponse(view.as_dict())

    @app.post("/tenders/{tender_id}/vendors/{vendor_id}/implied-charges/promote-all")
    async def promote_vendor_charges(tender_id: str, vendor_id: str) -> JSONResponse:
        """Write the vendor's implied MFS charges back in one batch."""

        try:
            view = ledger_service.load_vendor_ledger(tender_id, vendor_id)
        except KeyError as error:
            raise HTTPException(status_code=404, detail=str(error)) from error
        result = ledger_service.promote_all_implied(view.implied_charges)
        return JSONResponse(result.as_dict(), status_code=207 if result.failed else 200)

    @app.get("/tenders/{tender_id}/balances")
    async def tender_balances(tender_id: str) -> JSONResponse:
        """Return the advances register for everyone active on the tender."""

        balances = ledger_service.tender_balances(tender_id)
        LOGGER.debug("Returning %s balance rows for tender %s", len(balances), tender_id)
        return JSONResponse({"tender_id": tender_id, "balances": [row.as_dict() for row in balances]})

    return app
