import uuid

from clinic.audit import AuditAction, AuditStatus, log, log_appointment, log_odontogram, log_payment, safe_log
from clinic.db import models
from clinic.db.repositories import audits as audit_repo
from tests.factories import make_user


def test_log_basic(db):
    user = make_user(db)
    target = uuid.uuid4()
    entry = log(
        db,
        action=AuditAction.PATIENT_CREATE,
        status=AuditStatus.SUCCESS,
        target_type="patient",
        target_id=target,
        actor_user_id=user.id,
        metadata={"foo": "bar"},
    )
    assert entry.action_type == AuditAction.PATIENT_CREATE.value
    assert entry.status == AuditStatus.SUCCESS.value
    assert entry.target_type == "patient"
    assert entry.target_id == target
    assert entry.metadata_json == {"foo": "bar"}


def test_log_accepts_plain_strings(db):
    user = make_user(db)
    entry = log(db, action="custom_action", status="failure", target_type="user", actor_user_id=user.id)
    assert entry.action_type == "custom_action"
    assert entry.status == "failure"
    assert entry.metadata_json == {}


def test_wrappers_set_target_and_metadata(db):
    user = make_user(db)
    appointment_id, odontogram_id, plan_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    log_appointment(db, actor_user_id=user.id, appointment_id=appointment_id, action=AuditAction.APPOINTMENT_CANCEL,
                    metadata={"reason": "sick"})
    log_odontogram(db, actor_user_id=user.id, odontogram_id=odontogram_id, action=AuditAction.ODONTOGRAM_VERSION,
                   version=3)
    log_payment(db, actor_user_id=user.id, target_type="payment_plan", target_id=plan_id,
                action=AuditAction.PAYMENT_PLAN_PAYMENT, amount=25.5)

    rows = {row.target_type: row for row in audit_repo.get_audit_logs(db, user_id=user.id)}
    assert rows["appointment"].target_id == appointment_id
    assert rows["appointment"].metadata_json == {"reason": "sick"}
    assert rows["odontogram"].metadata_json == {"version": 3}
    assert rows["payment_plan"].metadata_json == {"amount": 25.5}


def test_get_audit_logs_filters(db):
    first, second = make_user(db), make_user(db)
    log(db, action=AuditAction.PATIENT_CREATE, target_type="patient", actor_user_id=first.id)
    log(db, action=AuditAction.PATIENT_DELETE, target_type="patient", actor_user_id=first.id)
    log(db, action=AuditAction.EXPENSE_CREATE, target_type="expense", actor_user_id=second.id)

    assert len(audit_repo.get_audit_logs(db, user_id=first.id)) == 2
    deletes = audit_repo.get_audit_logs(db, user_id=first.id, action_type="patient_delete")
    assert [row.action_type for row in deletes] == ["patient_delete"]
    assert len(audit_repo.get_audit_logs(db, user_id=second.id, target_type="patient")) == 0
    assert len(audit_repo.get_audit_logs(db, user_id=first.id, limit=1)) == 1


def test_safe_log_swallows_failures(db, monkeypatch):
    user = make_user(db)

    def _boom(*args, **kwargs):
        raise RuntimeError("database unavailable")

    rollbacks = []
    monkeypatch.setattr(audit_repo, "create_audit_log", _boom)
    monkeypatch.setattr(db, "rollback", lambda: rollbacks.append(True))
    safe_log(db, action=AuditAction.PATIENT_CREATE, target_type="patient", actor_user_id=user.id)
    assert rollbacks == [True]
    assert db.query(models.AuditLog).filter(models.AuditLog.actor_user_id == user.id).count() == 0
