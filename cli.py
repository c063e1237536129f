"""
CLI интерфейс движка сертификатов
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from config.settings import get_settings, setup_logging
from certengine.service import CertificateService, build_certificate_service


class CertificateCLI:
    """CLI интерфейс для работы с сертификатами"""

    def __init__(self, service: Optional[CertificateService] = None):
        self.settings = get_settings()
        self.setup_logging()
        self._service = service
        self._owns_service = False

    def setup_logging(self):
        """Настройка логирования"""
        setup_logging(self.settings)
        self.logger = logging.getLogger(__name__)

    @property
    def service(self) -> CertificateService:
        if self._service is None:
            self._service = build_certificate_service(self.settings)
            self._owns_service = True
        return self._service

    def _print_result(self, result, success_title: str) -> bool:
        if not result.success:
            print(f"✗ Ошибка ({result.kind}): {result.error}")
            return False

        print(f"✓ {success_title}:")
        print(f"  ID: {result.certificate_id}")
        print(f"  Номер: {result.certificate_number}")
        if result.message:
            print(f"  {result.message}")
        if result.pdf_url:
            pdf = result.pdf_url if not result.used_fallback else "встроен в запись (data URI)"
            print(f"  PDF: {pdf}")
        return True

    async def issue_certificate(self, args) -> bool:
        """Выдача сертификата по обучению"""
        result = await self.service.issue_from_training(args.training_id, notes=args.notes)
        return self._print_result(result, "Сертификат выдан")

    async def generate_pdf(self, args) -> bool:
        """Генерация документа сертификата"""
        result = await self.service.generate_certificate_pdf(args.certificate_id)
        return self._print_result(result, "Документ создан")

    async def upload_pdf(self, args) -> bool:
        """Загрузка готового PDF"""
        path = Path(args.file)
        if not path.is_file():
            print(f"✗ Файл не найден: {path}")
            return False

        content_type = "application/pdf" if path.suffix.lower() == ".pdf" else "application/octet-stream"
        result = await self.service.upload_existing_certificate(
            args.certificate_id, path.read_bytes(), content_type
        )
        return self._print_result(result, "Документ загружен")

    async def show_certificate(self, args) -> bool:
        """Просмотр сертификата"""
        result = await self.service.get_certificate_details(args.certificate_id)
        if not result.success:
            print(f"✗ Ошибка ({result.kind}): {result.error}")
            return False

        certificate = result.certificate
        info = result.status_info
        program = certificate.program

        print(f"✓ Сертификат найден:")
        print(f"  Номер: {certificate.certificate_number}")
        print(f"  Сотрудник: {certificate.trainee.full_name if certificate.trainee else 'N/A'}")
        print(f"  Программа: {program.title if program else 'N/A'}")
        print(f"  Аэропорт: {certificate.airport.name if certificate.airport else 'N/A'}")
        print(f"  Период: {certificate.validity_period}")
        print(f"  Статус: {info['text']}")
        if certificate.pdf_url:
            print(f"  PDF: {'встроен в запись' if not certificate.has_durable_artifact else certificate.pdf_url}")
        return True

    async def set_status(self, args) -> bool:
        """Смена статуса сертификата"""
        result = await self.service.update_certificate_status(args.certificate_id, args.status)
        return self._print_result(result, "Статус изменен")

    async def delete_certificate(self, args) -> bool:
        """Удаление сертификата"""
        result = await self.service.delete_certificate(args.certificate_id)
        return self._print_result(result, "Сертификат удален")

    async def show_profile(self, args) -> bool:
        """Сводный профиль сотрудника"""
        result = await self.service.load_profile_bundle(args.person_id)
        if not result.success:
            print(f"✗ Ошибка ({result.kind}): {result.error}")
            return False

        bundle = result.profile_bundle
        summary = bundle.summary

        print(f"✓ {bundle.profile.full_name or bundle.profile.id}")
        if bundle.job_category:
            print(f"  Категория: {bundle.job_category.display_name}")
        if bundle.primary_airport:
            print(f"  Основной аэропорт: {bundle.primary_airport.name}")
        print(f"  Обучения: {summary.total_trainings} (завершено {summary.completed_trainings}, "
              f"{summary.completion_rate}%)")
        print(f"  Сертификаты: {summary.total_certificates} (действуют {summary.active_certificates}, "
              f"скоро истекают {summary.expiring_certificates})")
        print(f"  Экзамены: {summary.passed_exams}/{summary.total_exams}")

        for certificate in bundle.certificates:
            print(f"    {certificate.certificate_number}: {bundle.certificate_statuses[certificate.id]} "
                  f"до {certificate.expiry_date}")
        return True

    async def init_db(self, args) -> bool:
        """Создание таблиц БД"""
        from certengine.database import get_db_manager

        db_manager = get_db_manager()
        try:
            if args.reset:
                await db_manager.drop_tables()
                print("✓ Таблицы удалены")
            await db_manager.create_tables()
            print("✓ Таблицы созданы")
            return True
        except Exception as e:
            print(f"✗ Ошибка создания таблиц: {e}")
            self.logger.error(f"Ошибка создания таблиц: {e}")
            return False
        finally:
            await db_manager.dispose()

    async def _execute(self, command, args) -> bool:
        """Выполняет команду и закрывает пул соединений собранного сервиса"""
        try:
            return await command(args)
        finally:
            if self._owns_service:
                from certengine.database import get_db_manager
                await get_db_manager().dispose()

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Выдача и хранение сертификатов персонала",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Примеры использования:
  %(prog)s issue 9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d
  %(prog)s upload 5b0f3c62-8d9a-4a36-9c1e-3f3d2b8c1a10 scan.pdf
  %(prog)s status 5b0f3c62-8d9a-4a36-9c1e-3f3d2b8c1a10 suspended
            """
        )

        subparsers = parser.add_subparsers(dest='command', help='Доступные команды')

        issue_parser = subparsers.add_parser('issue', help='Выдать сертификат по завершенному обучению')
        issue_parser.add_argument('training_id', help='ID обучения')
        issue_parser.add_argument('--notes', help='Примечание к сертификату')

        gen_parser = subparsers.add_parser('generate', help='Сгенерировать PDF сертификата')
        gen_parser.add_argument('certificate_id', help='ID сертификата')

        upload_parser = subparsers.add_parser('upload', help='Загрузить готовый PDF')
        upload_parser.add_argument('certificate_id', help='ID сертификата')
        upload_parser.add_argument('file', help='Путь к PDF файлу')

        show_parser = subparsers.add_parser('show', help='Показать сертификат')
        show_parser.add_argument('certificate_id', help='ID сертификата')

        status_parser = subparsers.add_parser('status', help='Изменить статус сертификата')
        status_parser.add_argument('certificate_id', help='ID сертификата')
        status_parser.add_argument('status', choices=['valid', 'expired', 'suspended', 'revoked'])

        delete_parser = subparsers.add_parser('delete', help='Удалить сертификат')
        delete_parser.add_argument('certificate_id', help='ID сертификата')

        profile_parser = subparsers.add_parser('profile', help='Профиль сотрудника')
        profile_parser.add_argument('person_id', help='ID сотрудника')

        init_parser = subparsers.add_parser('init-db', help='Создать таблицы БД')
        init_parser.add_argument('--reset', action='store_true', help='Удалить таблицы перед созданием')

        return parser

    def main(self, argv=None) -> int:
        """Главная функция CLI"""
        parser = self.build_parser()
        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return 0

        commands = {
            'issue': self.issue_certificate,
            'generate': self.generate_pdf,
            'upload': self.upload_pdf,
            'show': self.show_certificate,
            'status': self.set_status,
            'delete': self.delete_certificate,
            'profile': self.show_profile,
            'init-db': self.init_db,
        }

        try:
            ok = asyncio.run(self._execute(commands[args.command], args))
        except Exception as e:
            print(f"✗ Ошибка: {e}")
            self.logger.error(f"Ошибка выполнения команды {args.command}: {e}")
            return 1

        return 0 if ok else 1


def run():
    """Точка входа консольной команды"""
    sys.exit(CertificateCLI().main())


if __name__ == '__main__':
    run()
