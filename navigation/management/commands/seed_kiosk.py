from django.core.management.base import BaseCommand

from navigation.gateway import get_gateway
from navigation.seed import seed_database


class Command(BaseCommand):
    help = 'Create the sample buildings, floors and rooms'

    def handle(self, *args, **options):
        result = seed_database(get_gateway())
        for building in result['buildings']:
            self.stdout.write(f"  {building['name']} ({building['id']})")
        self.stdout.write(self.style.SUCCESS(result['message']))
