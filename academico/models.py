import os

from django.conf import settings
from django.db import models
from django.utils import timezone


class RankingEntry(models.Model):
    """
    Una fila por cálculo: no se deduplica por estudiante.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ranking_entries",
    )
    name = models.CharField(max_length=120)
    curriculum = models.CharField(max_length=64, db_index=True)
    grades = models.JSONField(default=dict, blank=True)
    average = models.FloatField()
    credits_used = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-average", "created_at", "id"]
        indexes = [
            models.Index(fields=["-average"], name="academico_rank_avg_idx"),
            models.Index(fields=["curriculum", "-average"], name="academico_rank_cur_avg_idx"),
        ]

    def __str__(self):
        return f"{self.name} [{self.curriculum}] {self.average}"


class RiskAssessment(models.Model):
    student_id = models.CharField(max_length=64, unique=True)
    score = models.FloatField()
    tier = models.CharField(max_length=16)
    evaluated_at = models.DateTimeField(default=timezone.now)
    evaluated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="risk_assessments",
    )

    class Meta:
        ordering = ["-evaluated_at"]

    def __str__(self):
        return f"{self.student_id}: {self.tier} ({self.score})"


class TutoringRequest(models.Model):
    STATUS_PENDING = "pending"
    STATUS_ACCEPTED = "accepted"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pendiente"),
        (STATUS_ACCEPTED, "Aceptada"),
        (STATUS_COMPLETED, "Completada"),
        (STATUS_CANCELLED, "Cancelada"),
    ]

    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tutoring_requests",
    )
    tutor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tutoring_assignments",
    )
    course = models.CharField(max_length=120)
    curriculum = models.CharField(max_length=64, blank=True, default="")
    message = models.TextField(blank=True, default="")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["student", "status"], name="academico_tut_student_idx"),
            models.Index(fields=["status", "created_at"], name="academico_tut_status_idx"),
        ]

    def __str__(self):
        return f"{self.student.username} - {self.course} ({self.status})"


class LibraryResource(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="library_resources",
    )
    title = models.CharField(max_length=255, blank=True)
    course = models.CharField(max_length=120, blank=True, default="")
    # Archivos en media/resources/año/mes/
    file = models.FileField(upload_to="resources/%Y/%m/")
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-uploaded_at"]

    def save(self, *args, **kwargs):
        if not self.title:
            self.title = os.path.basename(self.file.name)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.owner.username} - {self.title}"
