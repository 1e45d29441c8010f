# academico/views.py
import json
import logging
from functools import wraps

from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.models import User
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .academic.curricula import get_curriculum_registry
from .academic.grade_calculator import has_legacy_fields, legacy_positional_grades
from .middleware import client_ip
from .services.chat import service as chat_service
from .services.grades import service as grades_service
from .services.resources import service as resources_service
from .services.risk import service as risk_service
from .services.shared.errors import InvalidGrade, PermissionDeniedError, ServiceError, ValidationError
from .services.shared.settings import get_engine_settings
from .services.tutoring import service as tutoring_service

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")


def _rid(request) -> str:
    return getattr(request, "request_id", "-")


def _log_extra(request) -> dict:
    return {"request_id": _rid(request)}


def _audit_extra(request, **overrides) -> dict:
    base = getattr(request, "audit", {}) or {}
    user = getattr(request, "user", None)
    extra = {
        "request_id": base.get("request_id", _rid(request)),
        "user": user.username if user is not None and user.is_authenticated else base.get("user", "-"),
        "ip": base.get("ip", client_ip(request)),
    }
    extra.update({k: v for k, v in overrides.items() if v is not None})
    return extra


def _is_staff(user) -> bool:
    return bool(user.is_staff or user.is_superuser)


def _method_not_allowed(request, label: str):
    logger.warning(f" [{label}] Method not allowed method={request.method} ip={client_ip(request)}", extra=_log_extra(request))
    return JsonResponse({"status": "error", "error": "Método no permitido."}, status=405)


def _json_body(request) -> dict:
    try:
        data = json.loads(request.body or b"{}")
    except ValueError:
        # JSONDecodeError, UnicodeDecodeError y enteros con demasiados dígitos
        raise ValidationError("JSON inválido.") from None
    if not isinstance(data, dict):
        raise ValidationError("El cuerpo debe ser un objeto JSON.")
    return data


def _service_error_response(request, exc: ServiceError, label: str):
    status = exc.status_code
    body = {"status": "error", "code": exc.code, "error": str(exc)}
    if isinstance(exc, InvalidGrade):
        body["curso"] = exc.course
    if status >= 500:
        logger.error(f" [{label} FAIL] status={status} err={exc!r}", extra=_log_extra(request), exc_info=True)
    else:
        logger.warning(f" [{label} REJECT] status={status} code={exc.code} err={exc}", extra=_log_extra(request))
    return JsonResponse(body, status=status)


def _server_error_response(request, exc: Exception, label: str):
    logger.error(f" [{label} CRASH] ip={client_ip(request)} err={exc!r}", extra=_log_extra(request), exc_info=True)
    return JsonResponse({"status": "error", "error": "Error interno del servidor."}, status=500)


def api_login_required(view):
    @wraps(view)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"status": "error", "error": "Autenticación requerida."}, status=401)
        return view(request, *args, **kwargs)

    return _wrapped


LOCKOUT_MESSAGE = "Demasiados intentos. Intenta más tarde."


def lockout_response(request, *args, **kwargs):
    """AXES_LOCKOUT_CALLABLE: django-axes reemplaza la respuesta del login bloqueado con esta."""
    return JsonResponse({"status": "error", "error": LOCKOUT_MESSAGE}, status=429)


def _user_payload(user) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "is_staff": _is_staff(user),
    }


# =========================
# AUTH
# =========================
@csrf_exempt
def register_api(request):
    if request.method != "POST":
        return _method_not_allowed(request, "REGISTER")

    ip = client_ip(request)
    try:
        data = _json_body(request)
        username = str(data.get("username") or "").strip()
        email = str(data.get("email") or "").strip()
        password = data.get("password") or ""
        confirm = data.get("password_confirmation") or ""

        errors = {}
        if not username:
            errors["username"] = "El usuario es obligatorio."
        if not email:
            errors["email"] = "El correo es obligatorio."
        if not password:
            errors["password"] = "La contraseña es obligatoria."
        elif password != confirm:
            errors["password_confirmation"] = "Las contraseñas no coinciden."
        else:
            try:
                validate_password(password)
            except DjangoValidationError as exc:
                errors["password"] = " ".join(exc.messages)
        if username and User.objects.filter(username__iexact=username).exists():
            errors["username"] = "El usuario ya existe."
        if email and User.objects.filter(email__iexact=email).exists():
            errors["email"] = "El correo ya está registrado."

        if errors:
            logger.warning(f" [REGISTER FAIL] ip={ip} errors={list(errors)}", extra=_log_extra(request))
            return JsonResponse({"status": "error", "errors": errors}, status=400)

        with transaction.atomic():
            user = User.objects.create_user(username=username, email=email, password=password)
    except ValidationError as exc:
        return _service_error_response(request, exc, "REGISTER")
    except IntegrityError:
        logger.warning(f" [REGISTER FAIL] ip={ip} username='{username}' already used", extra=_log_extra(request))
        audit_logger.warning(
            "action=register status=fail reason=duplicate_username",
            extra=_audit_extra(request, user=username),
        )
        return JsonResponse({"status": "error", "errors": {"username": "El usuario ya existe."}}, status=400)
    except Exception as e:
        return _server_error_response(request, e, "REGISTER")

    # hay varios backends de auth (axes), hay que indicar uno
    login(request, user, backend="django.contrib.auth.backends.ModelBackend")
    logger.info(f" [REGISTER SUCCESS] user={user.username} id={user.id} ip={ip}", extra=_log_extra(request))
    audit_logger.info(f"action=register status=success user_id={user.id}", extra=_audit_extra(request))
    return JsonResponse({"status": "success", "usuario": _user_payload(user)}, status=201)


@csrf_exempt
def login_api(request):
    if request.method != "POST":
        return _method_not_allowed(request, "LOGIN")

    ip = client_ip(request)
    try:
        data = _json_body(request)
    except ValidationError as exc:
        return _service_error_response(request, exc, "LOGIN")

    identifier = str(data.get("username") or data.get("email") or "").strip()
    password = data.get("password") or ""
    if not identifier or not password:
        return JsonResponse({"status": "error", "error": "Usuario y contraseña son obligatorios."}, status=400)

    username = identifier
    if "@" in identifier:
        match = User.objects.filter(email__iexact=identifier).only("username").first()
        if match:
            username = match.username

    user = authenticate(request, username=username, password=password)
    if user is None:
        if getattr(request, "axes_locked_out", False):
            logger.warning(f" [LOGIN LOCKED] username={identifier} ip={ip}", extra=_log_extra(request))
            audit_logger.warning("action=login status=locked", extra=_audit_extra(request, user=identifier))
            return lockout_response(request)
        logger.warning(f" [LOGIN FAIL] username={identifier} ip={ip}", extra=_log_extra(request))
        audit_logger.warning(
            "action=login status=fail reason=invalid_credentials",
            extra=_audit_extra(request, user=identifier),
        )
        return JsonResponse({"status": "error", "error": "Credenciales incorrectas."}, status=401)

    login(request, user)
    logger.info(f" [LOGIN SUCCESS] user={user.username} id={user.id} ip={ip}", extra=_log_extra(request))
    audit_logger.info(f"action=login status=success user_id={user.id}", extra=_audit_extra(request))
    return JsonResponse({"status": "success", "usuario": _user_payload(user)})


@csrf_exempt
def logout_api(request):
    if request.method != "POST":
        return _method_not_allowed(request, "LOGOUT")
    if request.user.is_authenticated:
        user_name = request.user.username
        logout(request)
        logger.info(f" [LOGOUT] user='{user_name}' ip={client_ip(request)}", extra=_log_extra(request))
        audit_logger.info("action=logout status=success", extra=_audit_extra(request, user=user_name))
    return JsonResponse({"status": "success"})


@api_login_required
def me_api(request):
    if request.method != "GET":
        return _method_not_allowed(request, "ME")
    return JsonResponse({"usuario": _user_payload(request.user)})


# =========================
# PONDERADO + RANKING
# =========================
def curricula_api(request):
    if request.method != "GET":
        return _method_not_allowed(request, "CURRICULA")
    try:
        return JsonResponse({"curricula": grades_service.list_curricula()})
    except Exception as e:
        return _server_error_response(request, e, "CURRICULA")


@csrf_exempt
def calcular_api(request):
    if request.method != "POST":
        return _method_not_allowed(request, "CALCULAR")

    try:
        data = _json_body(request)
        curriculum_id = data.get("curriculum") or get_engine_settings().default_curriculum
        grades = data.get("notas")
        if grades is None and has_legacy_fields(data):
            plan = get_curriculum_registry().get(curriculum_id)
            grades = legacy_positional_grades(plan, data)
        if grades is None:
            raise ValidationError("Faltan las notas ('notas').")

        payload = grades_service.calculate_and_record(
            name=data.get("nombre"),
            curriculum_id=curriculum_id,
            grades=grades,
            user=request.user,
        )
    except ServiceError as exc:
        return _service_error_response(request, exc, "CALCULAR")
    except Exception as e:
        return _server_error_response(request, e, "CALCULAR")

    audit_logger.info(
        f"action=calcular status=success entry_id={payload['id']} curriculum={payload['curriculum']} "
        f"ponderado={payload['ponderado']} coerciones={len(payload['coerciones'])}",
        extra=_audit_extra(request),
    )
    return JsonResponse(payload)


def ranking_api(request):
    if request.method != "GET":
        return _method_not_allowed(request, "RANKING")
    try:
        rows = grades_service.query_ranking(
            curriculum=request.GET.get("curriculum"),
            limit=request.GET.get("limit"),
        )
        return JsonResponse({"ranking": rows}, safe=True)
    except ServiceError as exc:
        return _service_error_response(request, exc, "RANKING")
    except Exception as e:
        return _server_error_response(request, e, "RANKING")


# =========================
# RIESGO
# =========================
@csrf_exempt
@api_login_required
def risk_api(request):
    if request.method != "POST":
        return _method_not_allowed(request, "RIESGO")
    try:
        if not _is_staff(request.user):
            raise PermissionDeniedError("Sólo el personal académico puede registrar riesgos.")
        data = _json_body(request)
        payload = risk_service.assess_risk(
            student_id=data.get("student_id"),
            score=data.get("score"),
            evaluated_by=request.user,
        )
    except ServiceError as exc:
        return _service_error_response(request, exc, "RIESGO")
    except Exception as e:
        return _server_error_response(request, e, "RIESGO")

    audit_logger.info(
        f"action=risk_upsert status=success student_id={payload['student_id']} tier={payload['tier']}",
        extra=_audit_extra(request),
    )
    return JsonResponse(payload)


@api_login_required
def risk_detail_api(request, student_id: str):
    if request.method != "GET":
        return _method_not_allowed(request, "RIESGO DETAIL")
    try:
        if not _is_staff(request.user) and request.user.username != student_id:
            raise PermissionDeniedError("No puedes consultar el riesgo de otro estudiante.")
        return JsonResponse(risk_service.get_assessment(student_id))
    except ServiceError as exc:
        return _service_error_response(request, exc, "RIESGO DETAIL")
    except Exception as e:
        return _server_error_response(request, e, "RIESGO DETAIL")


# =========================
# TUTORIAS
# =========================
@csrf_exempt
@api_login_required
def tutoring_api(request):
    try:
        if request.method == "GET":
            items = tutoring_service.list_requests(request.user, status=request.GET.get("status") or None)
            return JsonResponse({"tutorias": items})

        if request.method == "POST":
            data = _json_body(request)
            item = tutoring_service.create_request(
                request.user,
                course=data.get("course"),
                message=data.get("message"),
                curriculum=data.get("curriculum"),
            )
            audit_logger.info(
                f"action=tutoring_create status=success id={item['id']}",
                extra=_audit_extra(request),
            )
            return JsonResponse({"tutoria": item}, status=201)
    except ServiceError as exc:
        return _service_error_response(request, exc, "TUTORIAS")
    except Exception as e:
        return _server_error_response(request, e, "TUTORIAS")

    return _method_not_allowed(request, "TUTORIAS")


@csrf_exempt
@api_login_required
def tutoring_detail_api(request, request_id: int):
    if request.method != "PATCH":
        return _method_not_allowed(request, "TUTORIAS DETAIL")
    try:
        data = _json_body(request)
        item = tutoring_service.transition(request.user, request_id, data.get("action"))
    except ServiceError as exc:
        return _service_error_response(request, exc, "TUTORIAS DETAIL")
    except Exception as e:
        return _server_error_response(request, e, "TUTORIAS DETAIL")

    audit_logger.info(
        f"action=tutoring_{data.get('action')} status=success id={request_id} new_status={item['status']}",
        extra=_audit_extra(request),
    )
    return JsonResponse({"tutoria": item})


# =========================
# BIBLIOTECA DE RECURSOS
# =========================
@csrf_exempt
@api_login_required
def resources_api(request):
    try:
        if request.method == "GET":
            items = resources_service.list_resources(
                course=request.GET.get("course") or None,
                query=request.GET.get("q") or None,
            )
            return JsonResponse({"recursos": items})

        if request.method == "POST":
            files = request.FILES.getlist("files")
            payload = resources_service.upload_resources(
                request.user,
                files,
                title=request.POST.get("title"),
                course=request.POST.get("course"),
            )
            names = [getattr(f, "name", "-") for f in files]
            audit_logger.info(
                f"action=resource_upload status={payload['status']} files={len(files)} names={', '.join(names[:5])}",
                extra=_audit_extra(request),
            )
            return JsonResponse(payload, status=201 if payload["status"] == "success" else 400)
    except ServiceError as exc:
        return _service_error_response(request, exc, "RECURSOS")
    except Exception as e:
        return _server_error_response(request, e, "RECURSOS")

    return _method_not_allowed(request, "RECURSOS")


@csrf_exempt
@api_login_required
def resource_detail_api(request, resource_id: int):
    if request.method != "DELETE":
        return _method_not_allowed(request, "RECURSOS DETAIL")
    try:
        resources_service.delete_resource(request.user, resource_id)
    except ServiceError as exc:
        return _service_error_response(request, exc, "RECURSOS DETAIL")
    except Exception as e:
        return _server_error_response(request, e, "RECURSOS DETAIL")

    audit_logger.info(f"action=resource_delete status=success id={resource_id}", extra=_audit_extra(request))
    return JsonResponse({"status": "success"})


# =========================
# CHAT
# =========================
@csrf_exempt
@api_login_required
def chat_api(request):
    if request.method != "POST":
        return _method_not_allowed(request, "CHAT")
    try:
        data = _json_body(request)
        prompt = data.get("prompt") or data.get("message")
        q_preview = str(prompt or "")[:120]
        logger.info(
            f" [CHAT REQUEST] user={request.user.username}(id={request.user.id}) q='{q_preview}'",
            extra=_log_extra(request),
        )
        payload = chat_service.ask(prompt, request_id=_rid(request))
    except ServiceError as exc:
        return _service_error_response(request, exc, "CHAT")
    except Exception as e:
        return _server_error_response(request, e, "CHAT")
    return JsonResponse(payload)
