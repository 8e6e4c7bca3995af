from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ResumeModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class Location(ResumeModel):
    address: str | None = None
    postalCode: str | None = None
    city: str | None = None
    countryCode: str | None = None
    region: str | None = None


class Profile(ResumeModel):
    network: str | None = None
    username: str | None = None
    url: str | None = None


class Basics(ResumeModel):
    name: str | None = None
    label: str | None = None
    email: str | None = None
    phone: str | None = None
    url: str | None = None
    summary: str | None = None
    location: Location | None = None
    profiles: List[Profile] = Field(default_factory=list)


class WorkItem(ResumeModel):
    name: str | None = None
    position: str | None = None
    url: str | None = None
    startDate: str | None = None
    endDate: str | None = None
    summary: str | None = None
    highlights: List[str] = Field(default_factory=list)
    description: str | None = None


class EducationItem(ResumeModel):
    institution: str | None = None
    url: str | None = None
    area: str | None = None
    studyType: str | None = None
    startDate: str | None = None
    endDate: str | None = None
    score: str | float | None = None
    courses: List[str] = Field(default_factory=list)


class SkillItem(ResumeModel):
    name: str | None = None
    level: str | None = None
    keywords: List[str] = Field(default_factory=list)


class ProjectItem(ResumeModel):
    name: str | None = None
    description: str | None = None
    highlights: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    startDate: str | None = None
    endDate: str | None = None
    url: str | None = None


class LanguageItem(ResumeModel):
    language: str | None = None
    fluency: str | None = None


class CertificateItem(ResumeModel):
    name: str | None = None
    date: str | None = None
    issuer: str | None = None
    url: str | None = None


class AwardItem(ResumeModel):
    title: str | None = None
    date: str | None = None
    awarder: str | None = None
    summary: str | None = None


class PublicationItem(ResumeModel):
    name: str | None = None
    publisher: str | None = None
    releaseDate: str | None = None
    url: str | None = None
    summary: str | None = None


class VolunteerItem(ResumeModel):
    organization: str | None = None
    position: str | None = None
    url: str | None = None
    startDate: str | None = None
    endDate: str | None = None
    summary: str | None = None
    highlights: List[str] = Field(default_factory=list)


class ResumeDocument(ResumeModel):
    basics: Basics | None = None
    work: List[WorkItem] = Field(default_factory=list)
    education: List[EducationItem] = Field(default_factory=list)
    skills: List[SkillItem] = Field(default_factory=list)
    projects: List[ProjectItem] = Field(default_factory=list)
    languages: List[LanguageItem] = Field(default_factory=list)
    certificates: List[CertificateItem] = Field(default_factory=list)
    awards: List[AwardItem] = Field(default_factory=list)
    publications: List[PublicationItem] = Field(default_factory=list)
    volunteer: List[VolunteerItem] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_defaults=True)
