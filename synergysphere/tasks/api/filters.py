import django_filters

from synergysphere.tasks.models import Task


class TaskFilter(django_filters.FilterSet):
    project = django_filters.NumberFilter(field_name="project__id")
    status = django_filters.ChoiceFilter(choices=Task.Status.choices)
    assignee = django_filters.NumberFilter(field_name="assignees__id")
    due_before = django_filters.DateFilter(field_name="due_date", lookup_expr="lte")

    class Meta:
        model = Task
        fields = ["project", "status", "assignee", "due_before"]
