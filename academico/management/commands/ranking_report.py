from django.core.management.base import BaseCommand, CommandError

from academico.services.grades.service import query_ranking
from academico.services.shared.errors import ServiceError


class Command(BaseCommand):
    help = "Muestra el ranking de ponderados (general o por plan de estudios)."

    def add_arguments(self, parser):
        parser.add_argument("--curriculum", type=str, default="", help="Id del plan (vacío = ranking general)")
        parser.add_argument("--limit", type=int, default=None, help="Máximo de filas (tope: tamaño de página)")

    def handle(self, *args, **options):
        curriculum = str(options.get("curriculum") or "").strip()
        try:
            rows = query_ranking(curriculum=curriculum or None, limit=options.get("limit"))
        except ServiceError as exc:
            raise CommandError(str(exc)) from exc

        title = f"Ranking {curriculum}" if curriculum else "Ranking general"
        if not rows:
            self.stdout.write(self.style.WARNING(f"{title}: sin registros."))
            return

        self.stdout.write(self.style.SUCCESS(title))
        for row in rows:
            self.stdout.write(
                f"{row['posicion']:>3}. {row['nombre']:<30} {row['ponderado']:>8} "
                f"[{row['curriculum']}] créditos={row['creditosTotales']} {row['fecha']}"
            )
