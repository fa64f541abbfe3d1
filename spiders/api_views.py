# -*- mode: python -*-
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from drf_link_header_pagination import LinkHeaderPagination
from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from spiders import __version__, api_version, tools
from spiders.filters import EventFilter, SpecimenFilter
from spiders.models import Cocoon, Event, Specimen, offspring_name_generator
from spiders.serializers import (
    BulkCreateResultSerializer,
    BulkFeedingSerializer,
    CocoonEventSerializer,
    CocoonSerializer,
    DeceasedSerializer,
    EventSerializer,
    HatchSerializer,
    MatingSerializer,
    MoltSerializer,
    SingleFeedingSerializer,
    SpecimenDetailSerializer,
    SpecimenSerializer,
)

logger = logging.getLogger(__name__)


class LargeResultsSetPagination(LinkHeaderPagination):
    page_size = 1000
    page_size_query_param = "page_size"
    max_page_size = 10000


def rejected(err: DjangoValidationError) -> Response:
    """Response for a request that the models refused"""
    return Response({"detail": err.messages}, status=status.HTTP_400_BAD_REQUEST)


def get_owned_specimen(request, pk) -> Specimen:
    specimen = get_object_or_404(Specimen, uuid=pk)
    specimen.check_owner(request.user)
    return specimen


def get_owned_cocoon(request, pk) -> Cocoon:
    try:
        return Cocoon.objects.get_for_owner(pk, request.user)
    except Cocoon.DoesNotExist:
        raise Http404("No cocoon matches the given query.") from None


def int_param(request, name: str, default: int) -> int:
    try:
        return int(request.query_params.get(name, default))
    except ValueError:
        return default


@api_view(["GET"])
def info(request, format=None):
    return Response(
        {
            "name": "django-spider-colony",
            "version": __version__,
            "api_version": api_version,
        }
    )


class SpecimenList(generics.ListCreateAPIView):
    serializer_class = SpecimenSerializer
    filter_backends = (DjangoFilterBackend,)
    filterset_class = SpecimenFilter
    permission_classes = (permissions.IsAuthenticated,)

    def get_queryset(self):
        return Specimen.objects.owned_by(self.request.user).order_by("species", "name")

    def perform_create(self, serializer):
        serializer.save(owner=self.request.user)


class SpecimenOffspringList(generics.ListAPIView):
    """List all the offspring of a female"""

    serializer_class = SpecimenSerializer
    filter_backends = (DjangoFilterBackend,)
    filterset_class = SpecimenFilter
    permission_classes = (permissions.IsAuthenticated,)

    def get_queryset(self):
        specimen = get_owned_specimen(self.request, self.kwargs["pk"])
        return Specimen.objects.offspring_of(specimen).order_by("name")


class SpecimenPartnerList(generics.ListAPIView):
    """List the specimens that a specimen could be mated with"""

    serializer_class = SpecimenSerializer
    permission_classes = (permissions.IsAuthenticated,)

    def get_queryset(self):
        specimen = get_owned_specimen(self.request, self.kwargs["pk"])
        return Specimen.objects.eligible_partners(specimen).order_by("name")


@api_view(["GET", "PATCH", "DELETE"])
@permission_classes([permissions.IsAuthenticated])
def specimen_detail(request, pk: str, format=None):
    specimen = get_owned_specimen(request, pk)
    if request.method == "DELETE":
        logger.info("%s deleted specimen %s (%s)", request.user, specimen, pk)
        specimen.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
    if request.method == "PATCH":
        serializer = SpecimenSerializer(specimen, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        specimen = serializer.save()
        logger.info("%s updated specimen %s (%s)", request.user, specimen, pk)
    serializer = SpecimenDetailSerializer(specimen)
    return Response(serializer.data)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def specimen_events(request, pk: str, format=None):
    """The specimen's most recent events, optionally restricted to a category"""
    specimen = get_owned_specimen(request, pk)
    try:
        events = Event.objects.for_specimen(
            specimen,
            request.user,
            category=request.query_params.get("category"),
            limit=int_param(request, "limit", 50),
        )
    except DjangoValidationError as err:
        return rejected(err)
    return Response(EventSerializer(events, many=True).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def specimen_molts(request, pk: str, format=None):
    specimen = get_owned_specimen(request, pk)
    serializer = MoltSerializer(data=request.data, context={"specimen": specimen})
    serializer.is_valid(raise_exception=True)
    try:
        event = specimen.record_molt(owner=request.user, **serializer.validated_data)
    except DjangoValidationError as err:
        return rejected(err)
    return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def specimen_matings(request, pk: str, format=None):
    specimen = get_owned_specimen(request, pk)
    serializer = MatingSerializer(data=request.data, context={"specimen": specimen})
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    male, female = specimen.mating_roles(data.pop("partner"))
    try:
        event = specimen.record_mating(
            owner=request.user, male=male, female=female, **data
        )
    except DjangoValidationError as err:
        return rejected(err)
    return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def specimen_cocoons(request, pk: str, format=None):
    specimen = get_owned_specimen(request, pk)
    serializer = CocoonSerializer(data=request.data, context={"specimen": specimen})
    serializer.is_valid(raise_exception=True)
    try:
        cocoon = Cocoon.objects.lay(
            specimen, owner=request.user, **serializer.validated_data
        )
    except DjangoValidationError as err:
        return rejected(err)
    return Response(CocoonEventSerializer(cocoon).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def specimen_feedings(request, pk: str, format=None):
    specimen = get_owned_specimen(request, pk)
    serializer = SingleFeedingSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        event = specimen.record_feeding(owner=request.user, **serializer.validated_data)
    except DjangoValidationError as err:
        return rejected(err)
    return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def specimen_deceased(request, pk: str, format=None):
    specimen = get_owned_specimen(request, pk)
    serializer = DeceasedSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    specimen.mark_deceased(serializer.validated_data.get("date"))
    return Response(SpecimenDetailSerializer(specimen).data)


class EventList(generics.ListAPIView):
    serializer_class = EventSerializer
    filter_backends = (DjangoFilterBackend,)
    filterset_class = EventFilter
    pagination_class = LargeResultsSetPagination
    permission_classes = (permissions.IsAuthenticated,)

    def get_queryset(self):
        return Event.objects.filter(owner=self.request.user).order_by(
            "-date", "-created"
        )


@api_view(["GET", "DELETE"])
@permission_classes([permissions.IsAuthenticated])
def event_detail(request, pk: int, format=None):
    try:
        event = Event.objects.get_for_owner(pk, request.user)
    except Event.DoesNotExist:
        raise Http404("No event matches the given query.") from None
    if request.method == "DELETE":
        event.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
    return Response(EventSerializer(event).data)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def upcoming_hatches(request, format=None):
    """Active cocoons due to hatch in the coming days (`days`, default 14)"""
    cocoons = Cocoon.objects.upcoming_hatches(
        request.user,
        days_ahead=int_param(request, "days", 14),
        lookback_days=int_param(request, "lookback", 0),
    )
    return Response(CocoonEventSerializer(cocoons, many=True).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def cocoon_incubate(request, pk: int, format=None):
    cocoon = get_owned_cocoon(request, pk)
    try:
        cocoon.advance_to_incubating()
    except DjangoValidationError as err:
        return rejected(err)
    return Response(CocoonEventSerializer(cocoon).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def cocoon_fail(request, pk: int, format=None):
    cocoon = get_owned_cocoon(request, pk)
    try:
        cocoon.mark_failed()
    except DjangoValidationError as err:
        return rejected(err)
    return Response(CocoonEventSerializer(cocoon).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def cocoon_hatch(request, pk: int, format=None):
    """Mark a cocoon as hatched and add the hatchlings to the collection.

    Responds with the updated cocoon and a report of how many offspring were
    created. Offspring that could not be created are listed in the report;
    the cocoon stays hatched regardless.

    """
    cocoon = get_owned_cocoon(request, pk)
    serializer = HatchSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    base_name = serializer.validated_data.get("base_name")
    try:
        result = cocoon.hatch(
            serializer.validated_data["hatched_count"],
            name_generator=offspring_name_generator(base_name) if base_name else None,
        )
    except DjangoValidationError as err:
        return rejected(err)
    return Response(
        {
            "cocoon": CocoonEventSerializer(cocoon).data,
            "offspring": BulkCreateResultSerializer(result).data,
        },
        status=status.HTTP_201_CREATED if result.succeeded else status.HTTP_200_OK,
    )


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def batch_status(request, category: str, format=None):
    """Status projections for many specimens (`?ids=uuid,uuid,...`)"""
    try:
        projection = tools.PROJECTIONS[category]
    except KeyError:
        raise Http404(f"No status projection for {category}") from None
    ids = [pk for pk in request.query_params.get("ids", "").split(",") if pk]
    try:
        statuses = projection(ids, owner=request.user)
    except ValueError:
        return Response(
            {"detail": "ids must be a comma-separated list of uuids"},
            status=status.HTTP_400_BAD_REQUEST,
        )
    return Response({str(pk): value for pk, value in statuses.items()})


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def bulk_feedings(request, format=None):
    serializer = BulkFeedingSerializer(
        data=request.data, context={"owner": request.user}
    )
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    events = Specimen.objects.feed_many(
        data.pop("specimens"), owner=request.user, **data
    )
    return Response(
        EventSerializer(events, many=True).data, status=status.HTTP_201_CREATED
    )
