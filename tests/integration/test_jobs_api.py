"""Tenant isolation and department scoping on the ATS read APIs."""

from __future__ import annotations

import pytest

from talentgate.types import RoleCode


@pytest.mark.integration
class TestTenantIsolation:
    async def test_jobs_are_tenant_scoped(self, client, seed, login) -> None:
        acme = await seed.org("acme")
        globex = await seed.org("globex")
        acme_job = await seed.job(acme, "Acme Engineer")
        globex_job = await seed.job(globex, "Globex Engineer")
        await seed.member("rc@acme.test", acme, RoleCode.RECRUITER)
        await login("rc@acme.test")

        jobs = (await client.get("/api/jobs")).json()
        assert [j["id"] for j in jobs] == [acme_job.id]

        assert (await client.get(f"/api/jobs/{acme_job.id}")).status_code == 200
        resp = await client.get(f"/api/jobs/{globex_job.id}")
        assert resp.status_code == 404
        resp = await client.get(f"/api/jobs/{globex_job.id}/applications")
        assert resp.status_code == 404

    async def test_applications_only_from_own_tenant(self, client, seed, login) -> None:
        acme = await seed.org("acme")
        globex = await seed.org("globex")
        job = await seed.job(acme)
        mine = await seed.application(job)
        await seed.application(job, org_id=globex.id)
        await seed.member("hr@acme.test", acme, RoleCode.HR_MANAGER)
        await login("hr@acme.test")

        apps = (await client.get(f"/api/jobs/{job.id}/applications")).json()
        assert [a["id"] for a in apps] == [mine.id]

    async def test_org_admin_blocked_from_jobs_api(self, client, seed, login) -> None:
        acme = await seed.org("acme")
        await seed.member("admin@acme.test", acme, RoleCode.ORG_ADMIN)
        await login("admin@acme.test")
        assert (await client.get("/api/jobs")).status_code == 403

    async def test_super_admin_without_tenant_gets_403(self, client, seed, login) -> None:
        root = await seed.profile("root@platform.test")
        await seed.role(root, None, RoleCode.SUPER_ADMIN)
        await login("root@platform.test")
        resp = await client.get("/api/jobs")
        assert resp.status_code == 403
        assert resp.json() == {"detail": "Insufficient permissions"}


@pytest.mark.integration
class TestDepartmentScoping:
    async def test_hiring_manager_sees_assigned_departments(self, client, seed, login) -> None:
        acme = await seed.org("acme")
        eng = await seed.department(acme, "Engineering")
        sales = await seed.department(acme, "Sales")
        eng_job = await seed.job(acme, "Engineer", eng)
        sales_job = await seed.job(acme, "Account Exec", sales)
        hm = await seed.member("hm@acme.test", acme, RoleCode.HIRING_MANAGER)
        await seed.assign_department(hm, eng)
        await login("hm@acme.test")

        jobs = (await client.get("/api/jobs")).json()
        assert [j["id"] for j in jobs] == [eng_job.id]
        assert (await client.get(f"/api/jobs/{sales_job.id}")).status_code == 404

        me = (await client.get("/api/auth/me")).json()
        assert me["permitted_department_ids"] == [eng.id]

    async def test_hiring_manager_without_departments_sees_nothing(
        self, client, seed, login
    ) -> None:
        acme = await seed.org("acme")
        await seed.job(acme)
        await seed.member("hm@acme.test", acme, RoleCode.HIRING_MANAGER)
        await login("hm@acme.test")
        assert (await client.get("/api/jobs")).json() == []


@pytest.mark.integration
class TestInterviews:
    async def test_interviewer_sees_only_own(self, client, seed, login) -> None:
        acme = await seed.org("acme")
        iv = await seed.member("iv@acme.test", acme, RoleCode.INTERVIEWER)
        other = await seed.member("iv2@acme.test", acme, RoleCode.INTERVIEWER)
        application = await seed.application(await seed.job(acme))
        mine = await seed.interview(application, iv)
        await seed.interview(application, other)
        await login("iv@acme.test")

        interviews = (await client.get("/api/interviews")).json()
        assert [i["id"] for i in interviews] == [mine.id]
        # Interviewers have no access to the jobs API itself
        assert (await client.get("/api/jobs")).status_code == 403

    async def test_recruiter_sees_all_in_tenant(self, client, seed, login) -> None:
        acme = await seed.org("acme")
        globex = await seed.org("globex")
        iv = await seed.member("iv@acme.test", acme, RoleCode.INTERVIEWER)
        await seed.interview(await seed.application(await seed.job(acme)), iv)
        await seed.interview(await seed.application(await seed.job(acme)))
        await seed.interview(await seed.application(await seed.job(globex)))
        await seed.member("rc@acme.test", acme, RoleCode.RECRUITER)
        await login("rc@acme.test")

        assert len((await client.get("/api/interviews")).json()) == 2
