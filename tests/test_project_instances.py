from uuid import uuid4

from pydantic import ValidationError

from app.core.errors import EntityNotFound
from app.schemas.project_instances import GetProjectInstancesQuery, SaveProjectInstanceCommand
from app.schemas.query import FilteringParameters, SearchFilter
from app.services.project_instances import (
    ProjectInstancesQueryService,
    delete_project_instance,
    get_project_instance_by_id,
    get_project_instances,
    save_project_instance,
)
from tests.base import EDITOR_CLAIMS, DataManagerTestBase


class ProjectInstanceTests(DataManagerTestBase):
    def _service(self, claims=None) -> ProjectInstancesQueryService:
        return ProjectInstancesQueryService(self.db, authorization=self.authorization(claims))

    def test_save_search_and_delete(self):
        service = self._service()
        parent_id = save_project_instance(
            service, SaveProjectInstanceCommand(name="Shop", main_host="shop.example.com"), actor="root@example.com"
        )
        child_id = save_project_instance(
            service, SaveProjectInstanceCommand(name="Shop staging", parent_project_id=parent_id)
        )

        request = GetProjectInstancesQuery(
            filtering=FilteringParameters(query_filters=[SearchFilter(search_term="EXAMPLE.com")])
        )
        result = get_project_instances(service, request)
        self.assertEqual([item.id for item in result.items], [parent_id])
        self.assertEqual(result.items[0].created_by, "root@example.com")

        child = get_project_instance_by_id(service, child_id)
        self.assertEqual(child.parent_project_id, parent_id)

        save_project_instance(service, SaveProjectInstanceCommand(id=child_id, name="Shop QA"))
        self.assertEqual(get_project_instance_by_id(service, child_id).name, "Shop QA")

        self.assertTrue(delete_project_instance(service, child_id))
        self.assertFalse(delete_project_instance(service, child_id))
        self.assertIsNone(get_project_instance_by_id(service, child_id))

    def test_project_instances_are_not_restricted(self):
        save_project_instance(self._service(), SaveProjectInstanceCommand(name="Portal"))
        result = get_project_instances(self._service(EDITOR_CLAIMS), GetProjectInstancesQuery())
        self.assertEqual(result.total_items, 1)

    def test_update_of_missing_instance_raises(self):
        with self.assertRaises(EntityNotFound):
            save_project_instance(self._service(), SaveProjectInstanceCommand(id=uuid4(), name="Ghost"))

    def test_blank_name_is_rejected(self):
        with self.assertRaises(ValidationError):
            SaveProjectInstanceCommand(name="   ")
