def main():
    # config profiles are the first thing that need to be loaded (especially before stackpilot.config!)
    from .profiles import set_profile_from_sys_argv

    set_profile_from_sys_argv()

    from .stackpilot import stackpilot

    stackpilot()


if __name__ == "__main__":
    main()
