import logging

from django import forms
from django.contrib import admin
from django.utils import timezone

from .academic.risk import classify_risk, validate_risk_score
from .middleware import client_ip
from .models import LibraryResource, RankingEntry, RiskAssessment, TutoringRequest
from .services.shared.errors import ValidationError as ScoreError

audit_logger = logging.getLogger("audit")


@admin.register(RankingEntry)
class RankingEntryAdmin(admin.ModelAdmin):
    # El ranking es append-only: desde el admin sólo se consulta
    list_display = ("name", "curriculum", "average", "credits_used", "user", "created_at")
    list_filter = ("curriculum", "created_at")
    search_fields = ("name", "user__username")
    readonly_fields = ("user", "name", "curriculum", "grades", "average", "credits_used", "created_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class RiskAssessmentForm(forms.ModelForm):
    class Meta:
        model = RiskAssessment
        fields = ("student_id", "score")

    def clean_score(self):
        try:
            return validate_risk_score(self.cleaned_data.get("score"))
        except ScoreError as exc:
            raise forms.ValidationError(str(exc)) from exc


@admin.register(RiskAssessment)
class RiskAssessmentAdmin(admin.ModelAdmin):
    form = RiskAssessmentForm
    list_display = ("student_id", "score", "tier", "evaluated_by", "evaluated_at")
    list_filter = ("tier", "evaluated_at")
    search_fields = ("student_id",)
    readonly_fields = ("tier", "evaluated_by", "evaluated_at")

    def save_model(self, request, obj, form, change):
        # el nivel siempre se deriva del puntaje
        obj.tier = classify_risk(obj.score)
        obj.evaluated_by = request.user
        obj.evaluated_at = timezone.now()
        super().save_model(request, obj, form, change)
        audit_logger.info(
            f"action=admin_risk_save student_id={obj.student_id} tier={obj.tier}",
            extra={
                "request_id": getattr(request, "request_id", "-"),
                "user": request.user.username,
                "ip": client_ip(request),
            },
        )


@admin.register(TutoringRequest)
class TutoringRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "student", "tutor", "course", "status", "created_at")
    list_filter = ("status", "curriculum", "created_at")
    search_fields = ("course", "message", "student__username", "tutor__username")
    readonly_fields = ("created_at", "updated_at")


@admin.register(LibraryResource)
class LibraryResourceAdmin(admin.ModelAdmin):
    list_display = ("title", "course", "owner", "file_link", "uploaded_at")
    list_filter = ("course", "uploaded_at")
    search_fields = ("title", "course", "owner__username")
    readonly_fields = ("uploaded_at",)

    def file_link(self, obj):
        if obj.file:
            return obj.file.name
        return "Sin archivo"
    file_link.short_description = "Archivo"
