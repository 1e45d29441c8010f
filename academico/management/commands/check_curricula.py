from django.core.management.base import BaseCommand, CommandError

from academico.academic.curricula import load_curricula
from academico.services.shared.errors import CurriculumConfigError
from academico.services.shared.settings import get_engine_settings


class Command(BaseCommand):
    help = "Valida el archivo YAML de planes de estudio y muestra sus créditos."

    def add_arguments(self, parser):
        parser.add_argument("--file", type=str, default="", help="Ruta al YAML (por defecto CURRICULA_FILE)")

    def handle(self, *args, **options):
        path = str(options.get("file") or "").strip() or str(get_engine_settings().curricula_file)
        try:
            registry = load_curricula(path)
        except CurriculumConfigError as exc:
            raise CommandError(f"❌ {exc}") from exc

        for plan in registry:
            keys = ", ".join(f"{c.key}={c.weight}" for c in plan.courses)
            self.stdout.write(f"- {plan.id} ({plan.name}): créditos={plan.total_credits} [{keys}]")
        self.stdout.write(self.style.SUCCESS(f"✅ {len(registry)} plan(es) válidos en {path}"))
